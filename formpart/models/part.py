"""The part entity: a header set plus a lazily produced body."""

import codecs
from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass, replace
from typing import cast

from formpart.models.headers import ContentDisposition, ContentLength, ContentType, HeaderLike, Headers
from formpart.models.stream import collect

type Decoder = Callable[[bytes], str | None]

LATIN_1 = codecs.lookup("latin-1").name
DEFAULT_CHARSET = "utf-8"


def _is_latin_1(charset: str) -> bool:
    return codecs.lookup(charset).name == LATIN_1


@dataclass(frozen=True)
class Part[B: AsyncIterable[bytes]]:
    """
    One part of a multipart body.

    Disposition parameters are stored as one character per transmitted byte;
    the accessors below reinterpret those bytes under the requested charset.
    Metadata reads never touch ``body``.

    Whatever encodes a part (a multipart writer, an upload client) should consume
    ``body`` through ``ByteStream.chunks()`` or ``read()``. Those close the
    underlying file or response on every exit path, early exit and cancellation
    included. A bare ``async for`` abandoned midway leaves closing to the
    iterator's finalizer.
    """

    headers: Headers
    body: B

    def name(self, charset: str = DEFAULT_CHARSET) -> str | None:
        """This part's name from its Content-Disposition header, decoded as ``charset``."""
        return self._disposition_param("name", charset)

    def name_decoded(self, decode: Decoder) -> str | None:
        """This part's name from its Content-Disposition header, decoded from raw bytes by ``decode``."""
        return self._disposition_param_decoded("name", decode)

    def filename(self, charset: str = DEFAULT_CHARSET) -> str | None:
        """This part's filename from its Content-Disposition header, decoded as ``charset``."""
        return self._disposition_param("filename", charset)

    def filename_decoded(self, decode: Decoder) -> str | None:
        """This part's filename from its Content-Disposition header, decoded from raw bytes by ``decode``."""
        return self._disposition_param_decoded("filename", decode)

    def _disposition_param(self, key: str, charset: str) -> str | None:
        if _is_latin_1(charset):
            disposition = self.headers.get(ContentDisposition)
            return None if disposition is None else disposition.parameters.get(key)
        return self._disposition_param_decoded(key, lambda raw: raw.decode(charset, errors="replace"))

    def _disposition_param_decoded(self, key: str, decode: Decoder) -> str | None:
        disposition = self.headers.get(ContentDisposition)
        if disposition is None:
            return None
        value = disposition.parameters.get(key)
        if value is None:
            return None
        # Characters outside Latin-1 were never single wire bytes
        return decode(value.encode("latin-1", errors="replace"))

    @property
    def content_type(self) -> ContentType | None:
        return self.headers.get(ContentType)

    @property
    def charset(self) -> str | None:
        content_type = self.content_type
        return None if content_type is None else content_type.charset

    @property
    def content_length(self) -> int | None:
        content_length = self.headers.get(ContentLength)
        return None if content_length is None else content_length.length

    def put_headers(self, *headers: HeaderLike) -> "Part[B]":
        """Copy of this part whose headers replace same-named ones."""
        return replace(self, headers=self.headers.put(*headers))

    def covary[W: AsyncIterable[bytes]](self) -> "Part[W]":
        """The same part, typed with a wider body; no copy is made."""
        return cast("Part[W]", self)

    async def read(self) -> bytes:
        """Consume the body into memory."""
        return await collect(self.body)

    async def text(self, charset: str | None = None) -> str:
        """Consume the body and decode it with ``charset``, the Content-Type charset, or UTF-8."""
        data = await self.read()
        return data.decode(charset or self.charset or DEFAULT_CHARSET, errors="replace")
