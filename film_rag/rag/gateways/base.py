"""
网关接口定义

编排层只依赖这些接口，测试时用内存 fake 替换
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from film_rag.rag.models.candidate import Candidate

Vector = List[float]
MultimodalDocument = Dict[str, str]  # {"text": ...} 或 {"image": "data:...;base64,..."}


@dataclass(frozen=True)
class RerankHit:
    """重排结果：原始下标 + 相关性分数"""

    index: int
    relevance_score: float


class TextEmbedder(ABC):
    @abstractmethod
    async def embed_text(
        self, text: Union[str, Sequence[str]]
    ) -> Union[Vector, List[Vector]]:
        """
        文本向量化

        单个字符串返回单个向量；列表返回同序的向量列表（一次请求）。
        限流重试一次后仍失败则抛出 RateLimitError
        """


class ImageEmbedder(ABC):
    @abstractmethod
    async def embed_image(self, data: bytes, mime_type: str) -> Optional[Vector]:
        """
        图片向量化

        失败时返回 None 而不是抛异常，调用方视为"跳过该模态"
        """


class TextReranker(ABC):
    @abstractmethod
    async def rerank(
        self, query: str, documents: List[str], top_k: int
    ) -> List[RerankHit]:
        """
        Cross-Encoder 重排

        返回按相关性降序的 RerankHit；provider 失败时返回空列表
        """


class MultimodalReranker(ABC):
    @abstractmethod
    async def rerank(
        self, query: str, documents: List[MultimodalDocument], top_n: int
    ) -> List[RerankHit]:
        """多模态重排，文档可以是文本或 base64 图片，失败语义同 TextReranker"""


class Generator(ABC):
    @abstractmethod
    async def generate(self, question: str, candidates: List[Candidate]) -> str:
        """基于上下文生成回答，失败时抛出（生成是必选步骤）"""


class ImageFetcher(ABC):
    @abstractmethod
    async def fetch(self, url: str) -> Tuple[bytes, str]:
        """读取封面图，返回 (二进制, MIME)；任何失败都抛出"""
