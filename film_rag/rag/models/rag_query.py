"""
RAG 请求上下文

在编排入口处做参数校验，非法请求不会触发任何 provider 调用
"""

from dataclasses import dataclass
from typing import Optional

from film_rag.core.errors import InvalidQueryError


@dataclass
class RagQuery:
    text: Optional[str] = None
    image: Optional[bytes] = None
    image_mime: str = "image/jpeg"
    k: int = 5
    max_k: int = 20

    def __post_init__(self):
        """数据验证"""
        if self.text is not None:
            self.text = self.text.strip()
        if not self.text and not self.image:
            raise InvalidQueryError("查询不能为空（需要文本或图片）")
        if isinstance(self.k, bool) or not isinstance(self.k, int):
            raise InvalidQueryError(f"k 必须是整数: {self.k!r}")
        if self.k < 1 or self.k > self.max_k:
            raise InvalidQueryError(f"k 超出范围 [1, {self.max_k}]: {self.k}")

    @property
    def has_text(self) -> bool:
        return bool(self.text)
