"""Test fixtures for formpart unit tests."""

import io
import os
import threading
from dataclasses import dataclass, field
from pathlib import PurePath

import pytest

from formpart.core.executor import InlineExecutor


# -----------------------------------------------------------------------------
# Instrumented I/O capabilities
# -----------------------------------------------------------------------------


@dataclass
class RecordingHandle:
    """Blocking byte handle that records reads and closing."""

    data: bytes
    reads: list[int] = field(default_factory=list)
    closed: bool = False

    def __post_init__(self) -> None:
        self._buffer = io.BytesIO(self.data)

    def read(self, size: int = -1, /) -> bytes:
        if self.closed:
            raise ValueError("read from closed handle")
        self.reads.append(size)
        return self._buffer.read(size)

    def close(self) -> None:
        self.closed = True


@dataclass
class InstrumentedFileSystem:
    """In-memory filesystem recording every open call."""

    files: dict[str, bytes] = field(default_factory=dict)
    opened: list[str] = field(default_factory=list)
    handles: list[RecordingHandle] = field(default_factory=list)

    def open_read(self, path: str | os.PathLike[str]) -> RecordingHandle:
        key = os.fspath(path)
        self.opened.append(key)
        if key not in self.files:
            raise FileNotFoundError(key)
        handle = RecordingHandle(self.files[key])
        self.handles.append(handle)
        return handle

    def file_name(self, path: str | os.PathLike[str]) -> str:
        return PurePath(path).name


@dataclass
class RecordingOpener:
    """Zero-argument resource factory counting its invocations."""

    data: bytes
    handles: list[RecordingHandle] = field(default_factory=list)

    def __call__(self) -> RecordingHandle:
        handle = RecordingHandle(self.data)
        self.handles.append(handle)
        return handle


@dataclass
class GatedHandle(RecordingHandle):
    """Handle whose reads block on a worker thread until released."""

    started: threading.Event = field(default_factory=threading.Event)
    release: threading.Event = field(default_factory=threading.Event)
    in_read: bool = False
    closed_during_read: bool = False

    def read(self, size: int = -1, /) -> bytes:
        self.in_read = True
        self.started.set()
        try:
            self.release.wait(timeout=5)
            return super().read(size)
        finally:
            self.in_read = False

    def close(self) -> None:
        if self.in_read:
            self.closed_during_read = True
        super().close()


@dataclass
class GatedOpener:
    """Resource factory that blocks inside open, or hands out gated handles."""

    data: bytes
    block_open: bool = False
    started: threading.Event = field(default_factory=threading.Event)
    release: threading.Event = field(default_factory=threading.Event)
    handles: list[RecordingHandle] = field(default_factory=list)

    def __call__(self) -> RecordingHandle:
        if self.block_open:
            self.started.set()
            self.release.wait(timeout=5)
            handle = RecordingHandle(self.data)
        else:
            handle = GatedHandle(self.data, started=self.started, release=self.release)
        self.handles.append(handle)
        return handle


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def inline_executor() -> InlineExecutor:
    """Executor running blocking calls on the loop thread."""
    return InlineExecutor()


@pytest.fixture
def filesystem() -> InstrumentedFileSystem:
    """Instrumented filesystem with a couple of files."""
    return InstrumentedFileSystem(
        files={
            "/srv/upload/report.pdf": b"%PDF-1.7" + bytes(range(256)) * 40,
            "/srv/upload/empty.bin": b"",
        }
    )


@pytest.fixture
def make_opener():
    """Factory fixture to create recording resource openers."""

    def _make(data: bytes) -> RecordingOpener:
        return RecordingOpener(data)

    return _make


@pytest.fixture
def make_gated_opener():
    """Factory fixture to create openers whose blocking calls wait for a release."""

    def _make(data: bytes, block_open: bool = False) -> GatedOpener:
        return GatedOpener(data, block_open=block_open)

    return _make
