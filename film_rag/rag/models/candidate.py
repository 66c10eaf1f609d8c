"""
候选文档数据模型

召回、融合、重排各阶段流转的文档表示
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict


class Modality(str, Enum):
    """向量模态，每种模态对应一个独立的向量索引"""

    TEXT = "text"
    IMAGE = "image"


class QueryType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class Candidate:
    """
    召回候选文档

    score 只在当前阶段内可比（向量相似度 / BM25 / RRF / 重排分数），
    各阶段生成新的 Candidate，身份字段不变
    """

    id: str  # 文档ID，跨更新稳定
    title: str = ""
    description: str = ""
    cover_image: str = ""
    score: float = 0.0

    def with_score(self, score: float) -> "Candidate":
        return replace(self, score=float(score))

    def as_text_document(self) -> str:
        """重排用的纯文本表示，空文档返回单个空格避免 provider 报错"""
        text = f"{self.title or ''} {self.description or ''}".strip()
        return text or " "

    @classmethod
    def from_source(cls, doc_id: Any, score: float, source: Dict[str, Any]) -> "Candidate":
        """从检索引擎返回的文档字段构造"""
        source = source or {}
        return cls(
            id=str(doc_id),
            title=source.get("title") or "",
            description=source.get("description") or "",
            cover_image=source.get("coverImage") or source.get("cover_image") or "",
            score=float(score),
        )
