"""Error normalization and write shielding shared by the services."""

import asyncio
from functools import wraps
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from relgraph.domain.errors import InternalFailureError, RelationshipError

T = TypeVar("T")


def guarded(message: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Let domain errors through unchanged and normalize everything else.

    Unexpected exceptions are logged with their traceback and re-raised as
    InternalFailureError carrying only ``message``. Cancellation is not an Exception
    and propagates untouched.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except RelationshipError:
                raise
            except Exception as e:
                logger.exception(f"{message} ({func.__qualname__})")
                raise InternalFailureError(message) from e

        return wrapper

    return decorator


async def committed(write: Awaitable[T]) -> T:
    """Await a single store write so that cancelling the caller cannot tear it down.

    The caller still sees CancelledError and issues no further writes.
    """
    return await asyncio.shield(write)
