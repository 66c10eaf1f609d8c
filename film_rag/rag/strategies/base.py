"""
检索引擎接口定义

召回策略只依赖这两个接口，Milvus / ES 客户端是它们的实现
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence


class VectorSearchEngine(ABC):
    @abstractmethod
    async def search_vector(
        self,
        index: Any,
        query_vector: List[float],
        num_candidates: int,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """
        向量相似度检索

        Returns:
            [{"id": ..., "score": ..., "entity": {...}}, ...]，按相似度降序
        """


class TextSearchEngine(ABC):
    @property
    @abstractmethod
    def configured(self) -> bool:
        """是否配置了全文索引"""

    @abstractmethod
    async def search_text(
        self, query: str, top_k: int = 10, fields: Sequence[str] = ("title", "description")
    ) -> List[Dict[str, Any]]:
        """
        全文检索

        Returns:
            [{"id": ..., "score": ..., "source": {...}}, ...]，按相关性降序
        """
