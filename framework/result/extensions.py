"""
Adapters turning plain values and awaitables into Result instances.
"""

from http import HTTPStatus
from typing import Awaitable, TypeVar

from framework.logging.logger import get_logger

from .result import Result

T = TypeVar("T")

logger = get_logger("result")


async def to_result_async(awaitable: Awaitable[T]) -> Result[T]:
    """
    Await ``awaitable`` and wrap its value as a successful Result.

    Any Exception becomes a 500 failure carrying the exception message; this is
    the boundary past which raw errors do not leak. Task cancellation is not an
    Exception and propagates unchanged.
    """
    try:
        value = await awaitable
    except Exception as e:
        logger.opt(exception=True).warning(f"Converted {type(e).__name__} to failed result: {e}")
        return Result.failure(HTTPStatus.INTERNAL_SERVER_ERROR, str(e) or type(e).__name__)
    return Result.success(value)


def to_result(value: T) -> Result[T]:
    """Wrap a plain value as a successful Result."""
    return Result.success(value)
