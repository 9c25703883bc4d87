"""Execution capability for blocking I/O calls made while a body is consumed."""

import asyncio
from collections.abc import Callable, Generator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from formpart.core.settings import settings as st


@runtime_checkable
class BlockingExecutor(Protocol):
    """Runs a blocking callable on behalf of a coroutine."""

    async def run[T](self, fn: Callable[..., T], *args: Any) -> T: ...


class ThreadExecutor:
    """Offloads blocking calls to a thread pool (the loop default pool when none is given)."""

    __slots__ = ("_pool",)

    def __init__(self, pool: ThreadPoolExecutor | None = None) -> None:
        self._pool = pool

    async def run[T](self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, fn, *args)


class InlineExecutor:
    """Runs blocking calls directly on the event loop thread."""

    __slots__ = ()

    async def run[T](self, fn: Callable[..., T], *args: Any) -> T:
        return fn(*args)


def create_thread_pool(max_workers: int | None = None) -> ThreadPoolExecutor:
    """Create ThreadPoolExecutor for blocking file and network reads."""
    return ThreadPoolExecutor(
        max_workers=max_workers or st.MAX_WORKERS,
        thread_name_prefix="formpart-io",
    )


@contextmanager
def thread_pool_context(max_workers: int | None = None) -> Generator[ThreadExecutor, None, None]:
    """Context manager for a temporary pool-backed executor."""
    pool = create_thread_pool(max_workers)
    try:
        yield ThreadExecutor(pool)
    finally:
        pool.shutdown(wait=True)


def default_executor() -> BlockingExecutor:
    """Executor used by builders when none is supplied."""
    return ThreadExecutor()
