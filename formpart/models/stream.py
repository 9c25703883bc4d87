"""Lazy, restartable byte streams and the chunked sources that feed them."""

import asyncio
import os
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Protocol

from formpart.core.executor import BlockingExecutor
from formpart.core.logger import LogIcon, logger
from formpart.io.filesystem import FileSystem


class Readable(Protocol):
    """A blocking byte resource read in chunks, closed once exhausted or abandoned."""

    def read(self, size: int = -1, /) -> bytes: ...

    def close(self) -> None: ...


class ByteStream:
    """
    A produce-on-demand sequence of byte chunks.

    The stream holds only a factory. Every iteration calls it anew, so nothing is
    opened until the first chunk is pulled, and each iteration is its own
    consumption with its own underlying handle. Use ``chunks()`` (or ``read()``)
    to get the handle released on every exit path, including early exit and
    cancellation; a bare ``async for`` that is abandoned midway leaves closing
    to the iterator's finalizer.
    """

    __slots__ = ("_factory",)

    def __init__(self, factory: Callable[[], AsyncIterator[bytes]]) -> None:
        self._factory = factory

    @classmethod
    def emit(cls, data: bytes) -> "ByteStream":
        """Stream of an already available byte string, as a single chunk."""

        async def _emit() -> AsyncIterator[bytes]:
            if data:
                yield data

        return cls(_emit)

    @classmethod
    def empty(cls) -> "ByteStream":
        return cls.emit(b"")

    @classmethod
    def of(cls, source: AsyncIterable[bytes]) -> "ByteStream":
        """
        Wrap an arbitrary async iterable; a ByteStream is returned as is.

        A one-shot source such as an async generator yields its chunks to the first
        consumption only.
        """
        if isinstance(source, ByteStream):
            return source

        async def _relay() -> AsyncIterator[bytes]:
            async with _closing(aiter(source)) as iterator:
                async for chunk in iterator:
                    yield chunk

        return cls(_relay)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._factory()

    @asynccontextmanager
    async def chunks(self) -> AsyncIterator[AsyncIterator[bytes]]:
        """Start one consumption and close it when the block exits."""
        async with _closing(self._factory()) as iterator:
            yield iterator

    async def read(self) -> bytes:
        """Consume the whole stream into memory."""
        async with self.chunks() as iterator:
            return b"".join([chunk async for chunk in iterator])

    def through(self, transform: Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]]) -> "ByteStream":
        """Lazily apply ``transform`` to each consumption of this stream."""

        async def _through() -> AsyncIterator[bytes]:
            async with self.chunks() as iterator, _closing(transform(iterator)) as transformed:
                async for chunk in transformed:
                    yield chunk

        return ByteStream(_through)


@asynccontextmanager
async def _closing(iterator: AsyncIterator[bytes]) -> AsyncIterator[AsyncIterator[bytes]]:
    try:
        yield iterator
    finally:
        if (aclose := getattr(iterator, "aclose", None)) is not None:
            await aclose()


async def collect(source: AsyncIterable[bytes]) -> bytes:
    """Drain any async byte iterable, closing its iterator afterwards."""
    if isinstance(source, ByteStream):
        return await source.read()
    async with _closing(aiter(source)) as iterator:
        return b"".join([chunk async for chunk in iterator])


async def _settle[T](pending: Awaitable[T], release: Callable[[T], object] | None = None) -> T:
    """
    Await ``pending`` without abandoning it when the caller is cancelled.

    A blocking call handed to a worker thread keeps running after its awaiter is
    cancelled. On cancellation the call is waited for, ``release`` is applied to its
    result, and only then does the cancellation propagate.
    """
    task = asyncio.ensure_future(pending)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        try:
            result = await asyncio.shield(task)
        except Exception as ex:
            logger.debug("Blocking call failed after cancellation", icon=LogIcon.STREAMING, error=repr(ex))
        else:
            if release is not None:
                release(result)
        raise


def read_input_stream(
    open_resource: Callable[[], Readable],
    chunk_size: int,
    executor: BlockingExecutor,
    close_after_use: bool = True,
) -> ByteStream:
    """
    Chunked stream over a blocking resource.

    ``open_resource`` is called once per consumption, on the first pull, through
    ``executor``; so is every ``read``. With ``close_after_use`` the handle is
    closed however the consumption ends, and never while a read on it is still
    running: a cancelled consumption waits for the in-flight call first.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    def _release(handle: Readable) -> None:
        if close_after_use:
            handle.close()

    async def _read() -> AsyncIterator[bytes]:
        try:
            handle = await _settle(executor.run(open_resource), _release)
        except Exception as ex:
            logger.error("Failed to open resource", icon=LogIcon.ERROR, error=repr(ex))
            raise
        logger.debug("Resource opened", icon=LogIcon.STREAMING, chunk_size=chunk_size)
        try:
            while chunk := await _settle(executor.run(handle.read, chunk_size)):
                yield chunk
        finally:
            _release(handle)
            if close_after_use:
                logger.debug("Resource closed", icon=LogIcon.STREAMING)

    return ByteStream(_read)


def read_all(
    path: str | os.PathLike[str],
    chunk_size: int,
    filesystem: FileSystem,
    executor: BlockingExecutor,
) -> ByteStream:
    """Read-only chunked stream over a file, opened on first pull."""
    return read_input_stream(lambda: filesystem.open_read(path), chunk_size, executor)
