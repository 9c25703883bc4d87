"""URL capability: opens file and http(s) resources as blocking, chunk-readable handles."""

from pathlib import Path, PurePosixPath
from typing import BinaryIO

import httpx

from formpart.core.logger import LogIcon, logger
from formpart.core.settings import settings as st


class HttpResource:
    """
    Streamed body of a GET response, readable with ``read(size)``.

    Owns its client and response and closes both on ``close()``.
    """

    __slots__ = ("_client", "_response", "_chunks", "_buffer")

    def __init__(self, client: httpx.Client, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._chunks = response.iter_bytes()
        self._buffer = bytearray()

    def read(self, size: int = -1, /) -> bytes:
        while size < 0 or len(self._buffer) < size:
            chunk = next(self._chunks, None)
            if chunk is None:
                break
            self._buffer.extend(chunk)

        if size < 0:
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def close(self) -> None:
        try:
            self._response.close()
        finally:
            self._client.close()


class UrlOpener:
    """
    Opens ``file:`` and ``http(s):`` URLs for reading.

    ``transport`` is handed to the httpx client; tests pass an ``httpx.MockTransport``.
    """

    __slots__ = ("_timeout", "_user_agent", "_transport")

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else st.URL_TIMEOUT
        self._user_agent = user_agent or st.URL_USER_AGENT
        self._transport = transport

    @staticmethod
    def file_name(url: httpx.URL) -> str:
        """Last non-empty segment of the (decoded) URL path."""
        return PurePosixPath(url.path).name

    def open(self, url: httpx.URL) -> BinaryIO | HttpResource:
        match url.scheme:
            case "file":
                logger.debug("Opening file URL", icon=LogIcon.FILE, url=str(url))
                return open(Path(url.path), "rb")  # noqa: SIM115
            case "http" | "https":
                return self._open_http(url)
            case _:
                raise ValueError(f"Unsupported URL scheme {url.scheme!r} in {url}")

    def _open_http(self, url: httpx.URL) -> HttpResource:
        logger.debug("Opening URL", icon=LogIcon.NETWORK, url=str(url))
        client = httpx.Client(
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
            follow_redirects=True,
            transport=self._transport,
        )
        try:
            request = client.build_request("GET", url)
            response = client.send(request, stream=True)
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError:
                response.close()
                raise
        except httpx.HTTPError:
            client.close()
            raise
        return HttpResource(client, response)
