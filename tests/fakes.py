"""
进程内 fake 实现（覆盖检索层用到的所有网关和引擎）

目的：不依赖 Milvus / ES / 外部 API，验证编排逻辑
"""

from __future__ import annotations

from typing import Any, Optional

from film_rag.core.errors import IndexNotFoundError
from film_rag.rag.gateways.base import (
    Generator,
    ImageEmbedder,
    ImageFetcher,
    MultimodalReranker,
    RerankHit,
    TextEmbedder,
    TextReranker,
)
from film_rag.rag.models.candidate import Candidate
from film_rag.rag.strategies.base import TextSearchEngine, VectorSearchEngine


def make_candidates(*ids: Any, score: float = 1.0) -> list[Candidate]:
    return [
        Candidate(
            id=str(i),
            title=f"Film {i}",
            description=f"Description of film {i}",
            cover_image=f"http://img.local/{i}.jpg",
            score=score,
        )
        for i in ids
    ]


class FakeTextEmbedder(TextEmbedder):
    def __init__(self, vector: Optional[list[float]] = None, error: Optional[Exception] = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls: list[Any] = []

    async def embed_text(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        if isinstance(text, str):
            return list(self.vector)
        return [list(self.vector) for _ in text]


class FakeImageEmbedder(ImageEmbedder):
    def __init__(self, vector: Optional[list[float]] = None):
        self.vector = vector
        self.calls: list[tuple[bytes, str]] = []

    async def embed_image(self, data, mime_type):
        self.calls.append((data, mime_type))
        return self.vector


class FakeVectorEngine(VectorSearchEngine):
    """按索引名返回预置结果，未预置的索引视为不存在"""

    def __init__(self, results_by_index: Optional[dict[str, list[dict]]] = None):
        self.results_by_index = results_by_index or {}
        self.calls: list[dict] = []

    async def search_vector(self, index, query_vector, num_candidates, limit):
        self.calls.append(
            {
                "index": index.index_name,
                "field": index.field,
                "vector": query_vector,
                "num_candidates": num_candidates,
                "limit": limit,
            }
        )
        if index.index_name not in self.results_by_index:
            raise IndexNotFoundError(index.index_name)
        return self.results_by_index[index.index_name][:limit]


class FakeTextEngine(TextSearchEngine):
    def __init__(
        self,
        results: Optional[list[dict]] = None,
        error: Optional[Exception] = None,
        configured: bool = True,
    ):
        self.results = results or []
        self.error = error
        self._configured = configured
        self.calls: list[tuple[str, int]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def search_text(self, query, top_k=10, fields=("title", "description")):
        self.calls.append((query, top_k))
        if self.error:
            raise self.error
        return self.results[:top_k]


class FakeTextReranker(TextReranker):
    def __init__(self, hits: Optional[list[RerankHit]] = None, error: Optional[Exception] = None):
        self.hits = hits or []
        self.error = error
        self.calls: list[dict] = []

    async def rerank(self, query, documents, top_k):
        self.calls.append({"query": query, "documents": list(documents), "top_k": top_k})
        if self.error:
            raise self.error
        return list(self.hits)


class FakeMultimodalReranker(MultimodalReranker):
    def __init__(self, hits: Optional[list[RerankHit]] = None):
        self.hits = hits or []
        self.calls: list[dict] = []

    async def rerank(self, query, documents, top_n):
        self.calls.append({"query": query, "documents": list(documents), "top_n": top_n})
        return list(self.hits)


class FakeImageFetcher(ImageFetcher):
    """urls 中的地址返回图片，其余抛异常"""

    def __init__(self, images: Optional[dict[str, tuple[bytes, str]]] = None):
        self.images = images or {}
        self.calls: list[str] = []

    async def fetch(self, url):
        self.calls.append(url)
        if url not in self.images:
            raise FileNotFoundError(url)
        return self.images[url]


class FakeGenerator(Generator):
    def __init__(self, answer: str = "fake answer", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, list[Candidate]]] = []

    async def generate(self, question, candidates):
        self.calls.append((question, list(candidates)))
        if self.error:
            raise self.error
        return self.answer
