"""
关键词召回策略

基于 ElasticSearch 的 title / description 全文检索
"""

from typing import List

from loguru import logger

from film_rag.rag.models.candidate import Candidate
from film_rag.rag.strategies.base import TextSearchEngine


class LexicalRetriever:
    """
    关键词召回策略

    关键词召回只是增强信号：未配置索引或检索失败都返回空列表，不影响主流程
    """

    def __init__(self, engine: TextSearchEngine = None):
        """
        初始化

        Args:
            engine: 全文检索引擎（ES 客户端），为空表示未配置
        """
        self.engine = engine
        logger.info(f"关键词召回策略初始化完成: enabled={self.enabled}")

    @property
    def enabled(self) -> bool:
        return self.engine is not None and self.engine.configured

    async def retrieve_by_text(self, query_text: str, k: int) -> List[Candidate]:
        """
        执行关键词召回

        Args:
            query_text: 查询文本
            k: 返回结果数量

        Returns:
            候选文档列表，任何失败都返回 []
        """
        if not self.enabled:
            logger.warning("[LexicalRetriever] 未配置全文索引，跳过关键词召回")
            return []
        if not query_text or not query_text.strip():
            return []

        try:
            logger.info(f"[LexicalRetriever] 开始执行关键词召回: query='{query_text}', k={k}")
            raw_results = await self.engine.search_text(query_text, top_k=k)
            candidates = [
                Candidate.from_source(item["id"], item["score"], item.get("source"))
                for item in raw_results
            ][:k]
            logger.info(f"[LexicalRetriever] 关键词召回完成，返回 {len(candidates)} 条结果")
            return candidates

        except Exception as e:
            logger.warning(f"[LexicalRetriever] 关键词召回失败，返回空结果: {e}")
            # 召回失败时返回空列表，不影响其他召回路径
            return []
