"""
RAG 模块 - 多模态多路召回检索引擎

向量召回 + 关键词召回，RRF 融合，文本/多模态重排
"""

# 数据模型
from film_rag.rag.models import (
    Candidate,
    ContextChunk,
    Modality,
    QueryType,
    RagAnswer,
    RagQuery,
    VectorIndexSpec,
)

# 召回策略
from film_rag.rag.strategies import LexicalRetriever, VectorRetriever

# 融合服务
from film_rag.rag.fusion import IFusionService, RRFMergeImpl, rrf_fuse

# 重排服务
from film_rag.rag.rerank import RerankService, RerankStrategy, select_rerank_strategy

# RAG 网关（核心编排器）
from film_rag.rag.search_gateway import RagGateway

__all__ = [
    # 数据模型
    "Candidate",
    "ContextChunk",
    "Modality",
    "QueryType",
    "RagAnswer",
    "RagQuery",
    "VectorIndexSpec",
    # 召回策略
    "LexicalRetriever",
    "VectorRetriever",
    # 融合服务
    "IFusionService",
    "RRFMergeImpl",
    "rrf_fuse",
    # 重排服务
    "RerankService",
    "RerankStrategy",
    "select_rerank_strategy",
    # 核心网关
    "RagGateway",
]
