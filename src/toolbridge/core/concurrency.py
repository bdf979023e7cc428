"""Async primitives: once-only initialization and cancellable execution."""
import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from ..common.types import OperationCancelled

T = TypeVar('T')

logger = logging.getLogger(__name__)


class AsyncOnce(Generic[T]):
    """Run an async factory to completion exactly once and cache its value.

    Concurrent first callers wait on the same gate and share the result.
    A factory that raises (or is cancelled) leaves the cell empty so a
    later call can try again; the gate is never left held.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]):
        self._factory = factory
        self._lock = asyncio.Lock()
        self._value: Optional[T] = None
        self._done = False

    @property
    def is_set(self) -> bool:
        return self._done

    def peek(self) -> Optional[T]:
        """Value if already computed, otherwise None."""
        return self._value if self._done else None

    async def get(self) -> T:
        if self._done:
            return self._value
        async with self._lock:
            if not self._done:
                self._value = await self._factory()
                self._done = True
        return self._value

    def set(self, value: T) -> None:
        """Replace the cached value (used by explicit refresh)."""
        self._value = value
        self._done = True

    def clear(self) -> None:
        self._value = None
        self._done = False


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
) -> T:
    """Await `awaitable` unless `cancel_event` fires first.

    Raises:
        OperationCancelled: the event fired; the inner work has been cancelled.
        asyncio.TimeoutError: the timeout elapsed.
    """
    if cancel_event is None:
        return await asyncio.wait_for(awaitable, timeout=timeout)

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {task, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug(f"Cancelled operation raised while stopping: {e}")

    if cancel_event.is_set():
        raise OperationCancelled("Operation cancelled")
    raise asyncio.TimeoutError()
