"""Typed header values and the case-insensitive header collection carried by a part."""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import ClassVar, Self

from multidict import CIMultiDict, CIMultiDictProxy
from python_multipart.multipart import parse_options_header

from formpart.core.logger import LogIcon, logger

# RFC 7230 token
_RE_TOKEN = re.compile(r"[a-zA-Z0-9!#$%&'*+.^_`|~-]+", re.ASCII)
_RE_DIGITS = re.compile(r"[0-9]+")

type HeaderLike = Header | tuple[str, str]


class HeaderParseError(ValueError):
    """Raised when a raw header value cannot be read as a typed header."""


def quote(value: str) -> str:
    """Render a parameter value as a quoted-string."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def to_wire(value: str, charset: str = "utf-8") -> str:
    """
    Encode ``value`` under ``charset`` and keep one character per transmitted byte.

    Characters the charset cannot encode (lone surrogates included) become ``?``.
    """
    return value.encode(charset, errors="replace").decode("latin-1")


def parse_parameterized(value: str) -> tuple[str, CIMultiDict[str]]:
    """
    Split ``type; k=v; k="v"`` into its leading token and parameters.

    Parameter values come back in wire form. RFC 2231 values (``filename*=UTF-8''...``)
    are percent-decoded to their bytes and override the plain parameter of the same name.
    """
    main_bytes, options = parse_options_header(value)
    main = main_bytes.decode("latin-1").strip()
    if not _RE_TOKEN.fullmatch(main.replace("/", "")):
        raise HeaderParseError(f"Invalid leading token in {value!r}")

    parameters: CIMultiDict[str] = CIMultiDict()
    for key, option in options.items():
        parameters.add(key.decode("latin-1"), option.decode("latin-1"))
    return main, parameters


def render_parameterized(main: str, parameters: Mapping[str, str]) -> str:
    rendered = [main]
    rendered.extend(f"{key}={quote(value)}" for key, value in parameters.items())
    return "; ".join(rendered)


class Header(ABC):
    """A typed header value; ``name`` is fixed per header type."""

    name: ClassVar[str]

    @property
    @abstractmethod
    def value(self) -> str:
        """Rendered header value."""

    @classmethod
    @abstractmethod
    def parse(cls, value: str) -> Self:
        """Read a raw header value, raising HeaderParseError when malformed."""


@dataclass(frozen=True)
class RawHeader(Header):
    """A header kept as its name and unparsed value."""

    name: str  # type: ignore[misc]
    raw: str

    @property
    def value(self) -> str:
        return self.raw

    @classmethod
    def parse(cls, value: str) -> Self:
        raise HeaderParseError("RawHeader has no fixed name to parse into")


@dataclass(frozen=True, eq=False)
class ContentDisposition(Header):
    """
    Content-Disposition header.

    Parameter values are held in wire form: one character per transmitted byte,
    so callers decide the charset when reading them (see ``Part.name``).
    """

    name: ClassVar[str] = "Content-Disposition"

    disposition_type: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "disposition_type", self.disposition_type.lower())
        object.__setattr__(self, "parameters", CIMultiDictProxy(CIMultiDict(self.parameters)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContentDisposition):
            return NotImplemented
        return self.disposition_type == other.disposition_type and self.parameters == other.parameters

    def __hash__(self) -> int:
        return hash((self.disposition_type, tuple((k.lower(), v) for k, v in self.parameters.items())))

    @classmethod
    def form_data(cls, name: str, filename: str | None = None, charset: str = "utf-8") -> "ContentDisposition":
        """Build a ``form-data`` disposition, storing parameters in wire form."""
        parameters = {"name": to_wire(name, charset)}
        if filename is not None:
            parameters["filename"] = to_wire(filename, charset)
        return cls("form-data", parameters)

    @property
    def value(self) -> str:
        return render_parameterized(self.disposition_type, self.parameters)

    @classmethod
    def parse(cls, value: str) -> "ContentDisposition":
        disposition_type, parameters = parse_parameterized(value)
        return cls(disposition_type, parameters)


@dataclass(frozen=True)
class ContentTransferEncoding(Header):
    """Content-Transfer-Encoding header; codings compare case-insensitively."""

    name: ClassVar[str] = "Content-Transfer-Encoding"

    BINARY: ClassVar["ContentTransferEncoding"]

    coding: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "coding", self.coding.strip().lower())

    @property
    def value(self) -> str:
        return self.coding

    @classmethod
    def parse(cls, value: str) -> "ContentTransferEncoding":
        coding = value.strip()
        if not _RE_TOKEN.fullmatch(coding):
            raise HeaderParseError(f"Invalid transfer coding {value!r}")
        return cls(coding)


ContentTransferEncoding.BINARY = ContentTransferEncoding("binary")


@dataclass(frozen=True, eq=False)
class ContentType(Header):
    """Content-Type header with its parameters."""

    name: ClassVar[str] = "Content-Type"

    media_type: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "media_type", self.media_type.lower())
        object.__setattr__(self, "parameters", CIMultiDictProxy(CIMultiDict(self.parameters)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContentType):
            return NotImplemented
        return self.media_type == other.media_type and self.parameters == other.parameters

    def __hash__(self) -> int:
        return hash((self.media_type, tuple((k.lower(), v) for k, v in self.parameters.items())))

    @property
    def charset(self) -> str | None:
        return self.parameters.get("charset")

    @property
    def value(self) -> str:
        return render_parameterized(self.media_type, self.parameters)

    @classmethod
    def parse(cls, value: str) -> "ContentType":
        media_type, parameters = parse_parameterized(value)
        if media_type.count("/") != 1:
            raise HeaderParseError(f"Invalid media type {media_type!r}")
        return cls(media_type, parameters)


@dataclass(frozen=True)
class ContentLength(Header):
    name: ClassVar[str] = "Content-Length"

    length: int

    def __post_init__(self) -> None:
        if self.length < 0:
            raise HeaderParseError(f"Negative content length {self.length}")

    @property
    def value(self) -> str:
        return str(self.length)

    @classmethod
    def parse(cls, value: str) -> "ContentLength":
        if not _RE_DIGITS.fullmatch(value.strip()):
            raise HeaderParseError(f"Invalid content length {value!r}")
        return cls(int(value))


def to_header(item: HeaderLike) -> Header:
    """Accept a typed header or a ``(name, value)`` pair."""
    match item:
        case Header():
            return item
        case (str() as name, str() as value):
            return RawHeader(name, value)
        case _:
            raise TypeError(f"Expected a Header or (name, value) pair, got {item!r}")


class Headers:
    """Ordered, immutable, case-insensitive multi-mapping of header name to typed values."""

    __slots__ = ("_entries",)

    def __init__(self, *headers: HeaderLike) -> None:
        entries: CIMultiDict[Header] = CIMultiDict()
        for item in headers:
            header = to_header(item)
            entries.add(header.name, header)
        self._entries = CIMultiDictProxy(entries)

    @classmethod
    def _from_entries(cls, entries: CIMultiDict[Header]) -> "Headers":
        instance = cls.__new__(cls)
        instance._entries = CIMultiDictProxy(entries)
        return instance

    def get[H: Header](self, kind: type[H]) -> H | None:
        """First header of ``kind``; raw entries under its name are parsed on demand."""
        name = getattr(kind, "name", None)
        if not isinstance(name, str):
            raise TypeError(f"{kind.__name__} has no fixed header name; use get_all(name) instead")
        header = self._entries.get(name)
        if header is None or isinstance(header, kind):
            return header
        try:
            return kind.parse(header.value)
        except HeaderParseError as err:
            logger.warning("Ignoring unparseable header", icon=LogIcon.WARNING, header=kind.name, error=str(err))
            return None

    def get_all(self, name: str) -> list[Header]:
        return self._entries.getall(name, [])

    def put(self, *headers: HeaderLike) -> "Headers":
        """New collection where each incoming name replaces every existing entry of that name."""
        incoming = [to_header(item) for item in headers]
        entries = CIMultiDict(self._entries)
        for header in incoming:
            entries.popall(header.name, None)
        for header in incoming:
            entries.add(header.name, header)
        return self._from_entries(entries)

    def add(self, *headers: HeaderLike) -> "Headers":
        """New collection with ``headers`` appended after existing entries."""
        entries = CIMultiDict(self._entries)
        for item in headers:
            header = to_header(item)
            entries.add(header.name, header)
        return self._from_entries(entries)

    def items(self) -> list[tuple[str, str]]:
        """Rendered ``(name, value)`` pairs in order, for a multipart encoder."""
        return [(header.name, header.value) for header in self]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[Header]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return _normalized(self) == _normalized(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Headers({self.items()})"


def _normalized(headers: Iterable[Header]) -> list[tuple[str, Header]]:
    return [(header.name.lower(), header) for header in headers]
