#!/usr/bin/env python3
"""
Retry - 远程调用重试

所有区块浏览器请求统一使用同一个重试原语：
- 每次尝试前固定等待（默认 1 秒，遵守浏览器的速率限制）
- 最多尝试 max_attempts 次
- 两次尝试之间按指数退避等待（1s 基数，逐次翻倍）
- 用尽重试次数后返回 default（降级为否定结果），不向调用方抛出
- 返回数据格式错误（DataIntegrityError）不重试，同样降级为 default
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger

from auditor.errors import DataIntegrityError, TransientNetworkError

T = TypeVar("T")


def exponential_backoff(base_delay: float = 1.0) -> Callable[[int], float]:
    """
    指数退避函数：第 n 次失败后等待 base_delay * 2 ** n 秒

    Args:
        base_delay: 基础等待时间（秒）

    Returns:
        attempt -> delay
    """
    def backoff(attempt: int) -> float:
        return base_delay * 2 ** attempt
    return backoff


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    description: str = "remote call",
    max_attempts: int = 3,
    rate_limit_delay: float = 1.0,
    backoff: Optional[Callable[[int], float]] = None,
    default: Any = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    带速率限制和指数退避的重试

    只有 TransientNetworkError 会被重试；DataIntegrityError 记录日志后直接返回 default；
    其他异常直接向上抛出。

    Args:
        operation: 无参数的异步调用
        description: 日志中的操作描述
        max_attempts: 最大尝试次数
        rate_limit_delay: 每次尝试前的固定等待（秒）
        backoff: 第 n 次失败后的等待时间函数（默认 1s 基数指数退避）
        default: 重试用尽后的返回值
        sleep: 等待函数（测试时可替换）

    Returns:
        operation 的返回值，或重试用尽后的 default
    """
    backoff = backoff or exponential_backoff(1.0)

    for attempt in range(1, max_attempts + 1):
        await sleep(rate_limit_delay)
        try:
            return await operation()
        except TransientNetworkError as e:
            logger.warning(f"{description} 失败 (attempt {attempt}/{max_attempts}): {e}")
            if attempt < max_attempts:
                await sleep(backoff(attempt))
        except DataIntegrityError as e:
            logger.warning(f"{description} 返回的数据无效，使用降级结果: {e}")
            return default

    logger.warning(f"{description} 在 {max_attempts} 次尝试后仍失败，使用降级结果")
    return default
