"""
重排服务模块

策略选择（决策表）与重排编排
"""

from film_rag.rag.rerank.policy import RerankStrategy, select_rerank_strategy
from film_rag.rag.rerank.service import RerankService, apply_rerank_hits, build_text_documents

__all__ = [
    "RerankStrategy",
    "select_rerank_strategy",
    "RerankService",
    "apply_rerank_hits",
    "build_text_documents",
]
