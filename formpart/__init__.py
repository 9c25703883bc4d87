"""formpart - lazy, typed parts for multipart/form-data bodies."""

from formpart.builders.part import CHUNK_SIZE, file_data, file_data_stream, file_data_url, form_data
from formpart.core.executor import BlockingExecutor, InlineExecutor, ThreadExecutor, thread_pool_context
from formpart.io.filesystem import FileSystem, LocalFileSystem
from formpart.io.resources import UrlOpener
from formpart.models.headers import (
    ContentDisposition,
    ContentLength,
    ContentTransferEncoding,
    ContentType,
    Header,
    HeaderParseError,
    Headers,
    RawHeader,
)
from formpart.models.part import Part
from formpart.models.stream import ByteStream, collect, read_all, read_input_stream

__all__ = [
    "CHUNK_SIZE",
    "BlockingExecutor",
    "ByteStream",
    "ContentDisposition",
    "ContentLength",
    "ContentTransferEncoding",
    "ContentType",
    "FileSystem",
    "Header",
    "HeaderParseError",
    "Headers",
    "InlineExecutor",
    "LocalFileSystem",
    "Part",
    "RawHeader",
    "ThreadExecutor",
    "UrlOpener",
    "collect",
    "file_data",
    "file_data_stream",
    "file_data_url",
    "form_data",
    "read_all",
    "read_input_stream",
    "thread_pool_context",
]
