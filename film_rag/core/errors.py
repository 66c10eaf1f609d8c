"""
异常定义

配置错误直接失败；限流错误重试一次；其余 provider 错误由调用方决定是否降级
"""

from typing import Optional


class RagError(Exception):
    """RAG 检索层异常基类"""


class ConfigurationError(RagError):
    """部署配置错误（索引不存在、凭证缺失等），不重试"""


class IndexNotFoundError(ConfigurationError):
    def __init__(self, index_name: str):
        self.index_name = index_name
        super().__init__(f"向量索引不存在: {index_name}")


class ProviderError(RagError):
    """外部 provider 调用失败（非限流）"""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}")


class RateLimitError(ProviderError):
    """provider 返回 429"""

    def __init__(self, provider: str, message: str = "rate limited"):
        super().__init__(provider, message, status_code=429)


class InvalidQueryError(RagError, ValueError):
    """请求参数非法（空查询、k 越界），在调用任何 provider 之前拒绝"""
