"""
向量召回策略

按模态选择命名向量索引进行相似度检索
"""

from typing import Dict, List, Optional

from loguru import logger

from film_rag.core.config import settings
from film_rag.core.errors import ConfigurationError
from film_rag.rag.models.candidate import Candidate, Modality
from film_rag.rag.models.vector_index import VectorIndexSpec
from film_rag.rag.strategies.base import VectorSearchEngine


class VectorRetriever:
    """
    向量召回策略

    引擎内部候选池为 min(max_candidates, k * multiplier)，对外最多返回 k 条。
    分数只在同一模态内可比，不能和关键词分数或其他模态分数直接比较
    """

    def __init__(
        self,
        engine: VectorSearchEngine,
        indexes: Dict[Modality, VectorIndexSpec],
        candidate_multiplier: Optional[int] = None,
        max_candidates: Optional[int] = None,
    ):
        """
        初始化

        Args:
            engine: 向量检索引擎（Milvus 客户端）
            indexes: 模态 -> 命名索引
            candidate_multiplier: 候选池倍数
            max_candidates: 候选池上限
        """
        self.engine = engine
        self.indexes = dict(indexes)
        self.candidate_multiplier = (
            settings.VECTOR_CANDIDATE_MULTIPLIER
            if candidate_multiplier is None
            else candidate_multiplier
        )
        self.max_candidates = (
            settings.VECTOR_MAX_CANDIDATES if max_candidates is None else max_candidates
        )
        logger.info(
            f"向量召回策略初始化完成: indexes={[i.index_name for i in self.indexes.values()]}"
        )

    def candidate_pool_size(self, k: int) -> int:
        return min(self.max_candidates, k * self.candidate_multiplier)

    async def retrieve(
        self, query_vector: List[float], modality: Modality, k: int
    ) -> List[Candidate]:
        """
        执行向量召回

        Args:
            query_vector: 查询向量
            modality: 目标模态
            k: 返回结果数量

        Returns:
            候选文档列表（相似度降序）

        Raises:
            ConfigurationError: 模态未配置索引或索引不存在
        """
        index = self.indexes.get(Modality(modality))
        if index is None:
            raise ConfigurationError(f"模态未配置向量索引: {modality}")

        num_candidates = self.candidate_pool_size(k)
        logger.info(
            f"[VectorRetriever] 开始执行向量召回: index={index.index_name}, "
            f"k={k}, num_candidates={num_candidates}"
        )

        try:
            raw_results = await self.engine.search_vector(
                index, query_vector, num_candidates=num_candidates, limit=k
            )
        except Exception as e:
            # 向量召回是必选步骤，失败直接上抛
            logger.error(f"[VectorRetriever] 向量召回失败: {e}")
            raise

        candidates = [
            Candidate.from_source(
                item["id"], self._similarity(item["score"], index), item.get("entity")
            )
            for item in raw_results
        ]
        candidates = candidates[:k]

        logger.info(f"[VectorRetriever] 向量召回完成，返回 {len(candidates)} 条结果")
        return candidates

    @staticmethod
    def _similarity(raw_score: float, index: VectorIndexSpec) -> float:
        if index.higher_is_closer:
            return float(raw_score)
        # L2距离转相似度分数
        return 1.0 / (1.0 + float(raw_score))
