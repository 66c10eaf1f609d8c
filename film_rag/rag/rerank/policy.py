"""
重排策略选择

纯函数决策表，不做任何 I/O，方便单独测试
"""

from enum import Enum

from film_rag.rag.models.candidate import QueryType


class RerankStrategy(str, Enum):
    TEXT = "text"  # 文本 Cross-Encoder
    MULTIMODAL = "multimodal"  # 多模态（拉取封面图）
    NONE = "none"  # 原样返回


def select_rerank_strategy(
    query_type: QueryType,
    rerank_by_text: bool,
    rerank_by_image: bool,
    has_explicit_text_query: bool,
) -> RerankStrategy:
    """
    决策表:

    | query_type     | by_text | by_image | 显式文本 | 策略       |
    |----------------|---------|----------|----------|------------|
    | text / hybrid  | 是      | -        | -        | TEXT       |
    | text / hybrid  | 否      | -        | -        | NONE       |
    | image          | -       | 是       | -        | MULTIMODAL |
    | image          | -       | 否       | 是       | TEXT       |
    | image          | -       | 否       | 否       | NONE       |
    """
    query_type = QueryType(query_type)

    if query_type in (QueryType.TEXT, QueryType.HYBRID):
        return RerankStrategy.TEXT if rerank_by_text else RerankStrategy.NONE

    if rerank_by_image:
        return RerankStrategy.MULTIMODAL
    # 没有文本查询时无法安全地降级到文本重排
    if has_explicit_text_query:
        return RerankStrategy.TEXT
    return RerankStrategy.NONE
