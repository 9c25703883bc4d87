"""Filesystem capability used by path-based parts."""

import os
from pathlib import PurePath
from typing import BinaryIO, Protocol, runtime_checkable

from formpart.core.logger import LogIcon, logger


@runtime_checkable
class FileSystem(Protocol):
    """Read-only access to named files."""

    def open_read(self, path: str | os.PathLike[str]) -> BinaryIO: ...

    def file_name(self, path: str | os.PathLike[str]) -> str: ...


class LocalFileSystem:
    """The process' own filesystem."""

    __slots__ = ()

    def open_read(self, path: str | os.PathLike[str]) -> BinaryIO:
        logger.debug("Opening file", icon=LogIcon.FILE, path=os.fspath(path))
        return open(path, "rb")  # noqa: SIM115

    def file_name(self, path: str | os.PathLike[str]) -> str:
        return PurePath(path).name
