"""
RRF 融合算法实现

只使用名次、不使用原始分数，因此向量相似度和 BM25 分数量纲不同也能直接融合
"""

from typing import Dict, List, Sequence

from loguru import logger

from film_rag.rag.fusion.base import IFusionService
from film_rag.rag.models.candidate import Candidate

DEFAULT_RRF_K = 60


def rrf_fuse(
    candidate_lists: Sequence[Sequence[Candidate]], k_const: int = DEFAULT_RRF_K
) -> List[Candidate]:
    """
    RRF 融合

    公式: score(d) = Σ 1/(k_const + rank(d) + 1)，rank 从 0 开始

    - 按 id 去重，保留第一次出现的文档内容，score 覆盖为融合分数
    - 分数相同时按首次出现顺序（稳定排序），结果确定
    - 纯函数，不修改输入
    """
    # dict 保持插入顺序，即首次出现顺序
    fused_scores: Dict[str, float] = {}
    first_seen: Dict[str, Candidate] = {}

    for candidate_list in candidate_lists:
        for rank, candidate in enumerate(candidate_list):
            if candidate.id not in first_seen:
                first_seen[candidate.id] = candidate
                fused_scores[candidate.id] = 0.0
            fused_scores[candidate.id] += 1.0 / (k_const + rank + 1)

    merged = [first_seen[doc_id].with_score(score) for doc_id, score in fused_scores.items()]
    merged.sort(key=lambda c: c.score, reverse=True)
    return merged


class RRFMergeImpl(IFusionService):
    """
    RRF 融合算法实现
    """

    def __init__(self, k_const: int = DEFAULT_RRF_K):
        self.k_const = k_const

    def fuse(
        self,
        list_a: List[Candidate],
        list_b: List[Candidate],
        k_const: int = None,
    ) -> List[Candidate]:
        k_const = self.k_const if k_const is None else k_const
        logger.info(
            f"[RRF] 开始融合: sizes=({len(list_a)}, {len(list_b)}), k={k_const}"
        )

        merged = rrf_fuse([list_a, list_b], k_const=k_const)

        logger.info(f"[RRF] 融合完成: 去重后总数={len(merged)}")
        logger.debug(f"[RRF] Top 3 分数: {[(c.id, round(c.score, 4)) for c in merged[:3]]}")
        return merged
