"""
限流重试

provider 返回 429 时等待固定冷却时间后重试一次，第二次仍限流则抛出
"""

from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from film_rag.core.config import settings
from film_rag.core.errors import RateLimitError

T = TypeVar("T")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(f"[Retry] 触发限流，{wait:.0f}s 后重试一次: {exc}")


async def retry_on_rate_limit(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    cooldown: float = None,
    **kwargs: Any,
) -> T:
    """
    调用 func，遇到 RateLimitError 时冷却后重试一次

    Args:
        func: 异步函数
        cooldown: 冷却秒数（默认使用 RATE_LIMIT_COOLDOWN_SECONDS）

    Returns:
        func 的返回值
    """
    if cooldown is None:
        cooldown = settings.RATE_LIMIT_COOLDOWN_SECONDS

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(2),
        wait=wait_fixed(cooldown),
        before_sleep=_log_before_sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await func(*args, **kwargs)
