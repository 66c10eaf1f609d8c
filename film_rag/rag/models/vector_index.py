from dataclasses import dataclass


@dataclass(frozen=True)
class VectorIndexSpec:
    """命名向量索引：索引名 + 向量字段 + 距离度量"""

    index_name: str
    field: str
    metric_type: str = "COSINE"

    @property
    def higher_is_closer(self) -> bool:
        # L2 是距离，越小越相似；COSINE / IP 越大越相似
        return self.metric_type.upper() != "L2"
