"""
RAG 返回结果模型

这是唯一跨出检索层的数据结构，不包含向量和内部 ID
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from film_rag.rag.models.candidate import Candidate


class ContextChunk(BaseModel):
    """单个上下文片段"""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field("", description="影片标题")
    description: str = Field("", description="影片简介")
    cover_image: str = Field("", alias="coverImage", description="封面图 URL")
    score: float = Field(..., description="当前阶段的相关性分数")

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "ContextChunk":
        return cls(
            title=candidate.title,
            description=candidate.description,
            cover_image=candidate.cover_image,
            score=candidate.score,
        )


class RagAnswer(BaseModel):
    """
    RAG 响应

    序列化时使用 camelCase（answer / contextChunks）
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "answer": "Gladiator follows a Roman general ...",
                "contextChunks": [
                    {
                        "title": "Gladiator",
                        "description": "A former Roman General sets out to exact vengeance ...",
                        "coverImage": "http://localhost:9000/films/gladiator.jpg",
                        "score": 0.91,
                    }
                ],
            }
        },
    )

    answer: str = Field(..., description="LLM 生成的回答")
    context_chunks: List[ContextChunk] = Field(
        default_factory=list, alias="contextChunks", description="上下文片段"
    )

    @classmethod
    def build(cls, answer: str, candidates: List[Candidate]) -> "RagAnswer":
        return cls(
            answer=answer,
            context_chunks=[ContextChunk.from_candidate(c) for c in candidates],
        )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
