"""
召回策略模块

向量召回（按模态选择命名索引）与关键词召回
"""

from film_rag.rag.strategies.base import TextSearchEngine, VectorSearchEngine
from film_rag.rag.strategies.vector_strategy import VectorRetriever
from film_rag.rag.strategies.keyword_strategy import LexicalRetriever

__all__ = ["TextSearchEngine", "VectorSearchEngine", "VectorRetriever", "LexicalRetriever"]
