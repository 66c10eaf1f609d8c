"""
数据模型模块

定义检索流水线的核心数据结构
"""

from film_rag.rag.models.candidate import Candidate, Modality, QueryType
from film_rag.rag.models.rag_query import RagQuery
from film_rag.rag.models.rag_answer import ContextChunk, RagAnswer
from film_rag.rag.models.vector_index import VectorIndexSpec

__all__ = [
    "Candidate",
    "Modality",
    "QueryType",
    "RagQuery",
    "ContextChunk",
    "RagAnswer",
    "VectorIndexSpec",
]
