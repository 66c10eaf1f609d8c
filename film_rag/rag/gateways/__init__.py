"""
外部 provider 网关

向量化、重排、生成、图片读取的接口定义与实现
"""

from film_rag.rag.gateways.base import (
    Generator,
    ImageEmbedder,
    ImageFetcher,
    MultimodalReranker,
    RerankHit,
    TextEmbedder,
    TextReranker,
)

__all__ = [
    "Generator",
    "ImageEmbedder",
    "ImageFetcher",
    "MultimodalReranker",
    "RerankHit",
    "TextEmbedder",
    "TextReranker",
]
