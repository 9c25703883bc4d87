"""Constructors for well-formed parts. None of them performs I/O; the body opens its source when pulled."""

import os
from collections.abc import AsyncIterable, Callable
from typing import Final

import httpx
from beartype import beartype

from formpart.core.executor import BlockingExecutor, default_executor
from formpart.core.logger import LogIcon, logger
from formpart.io.filesystem import FileSystem, LocalFileSystem
from formpart.io.resources import UrlOpener
from formpart.models.headers import ContentDisposition, ContentTransferEncoding, HeaderLike, Headers
from formpart.models.part import Part
from formpart.models.stream import ByteStream, Readable, read_all, read_input_stream

CHUNK_SIZE: Final = 8192


@beartype
def form_data(name: str, value: str, *headers: HeaderLike) -> Part[ByteStream]:
    """Text field ``name`` holding ``value`` as UTF-8."""
    logger.debug("Building form-data part", icon=LogIcon.BUILDER, part=name)
    return Part(
        Headers(ContentDisposition.form_data(name)).put(*headers),
        ByteStream.emit(value.encode("utf-8")),
    )


@beartype
def file_data(
    name: str,
    path: str | os.PathLike | httpx.URL,
    *headers: HeaderLike,
    filesystem: FileSystem | None = None,
    executor: BlockingExecutor | None = None,
) -> Part[ByteStream]:
    """
    File field ``name`` whose body is the file at ``path``, read in CHUNK_SIZE chunks.

    The filename is the last path segment. An ``httpx.URL`` is handled by ``file_data_url``.
    """
    if isinstance(path, httpx.URL):
        return file_data_url(name, path, *headers, executor=executor)

    filesystem = filesystem or LocalFileSystem()
    return file_data_stream(
        name,
        filesystem.file_name(path),
        read_all(path, CHUNK_SIZE, filesystem, executor or default_executor()),
        *headers,
    )


@beartype
def file_data_url(
    name: str,
    url: httpx.URL | str,
    *headers: HeaderLike,
    opener: UrlOpener | None = None,
    executor: BlockingExecutor | None = None,
) -> Part[ByteStream]:
    """File field ``name`` whose body is fetched from ``url`` when first pulled."""
    url = httpx.URL(url)
    opener = opener or UrlOpener()
    return _file_data_blocking(
        name,
        opener.file_name(url),
        lambda: opener.open(url),
        *headers,
        executor=executor or default_executor(),
    )


@beartype
def file_data_stream(
    name: str,
    filename: str,
    body: AsyncIterable[bytes],
    *headers: HeaderLike,
) -> Part[ByteStream]:
    """File field ``name`` named ``filename`` over any byte source; marked binary."""
    logger.debug("Building file part", icon=LogIcon.BUILDER, part=name, filename=filename)
    return Part(
        Headers(
            ContentDisposition.form_data(name, filename),
            ContentTransferEncoding.BINARY,
        ).put(*headers),
        ByteStream.of(body),
    )


def _file_data_blocking(
    name: str,
    filename: str,
    open_resource: Callable[[], Readable],
    *headers: HeaderLike,
    executor: BlockingExecutor,
) -> Part[ByteStream]:
    # open_resource must build a fresh handle per call: passing an opened one would
    # do I/O before consumption and share it between consumptions.
    return file_data_stream(
        name,
        filename,
        read_input_stream(open_resource, CHUNK_SIZE, executor),
        *headers,
    )
