"""Tests for the filesystem and URL capabilities."""

from pathlib import Path

import httpx
import pytest

from formpart.io.filesystem import FileSystem, LocalFileSystem
from formpart.io.resources import HttpResource, UrlOpener


# -----------------------------------------------------------------------------
# LocalFileSystem Tests
# -----------------------------------------------------------------------------


class TestLocalFileSystem:
    """Tests for the local filesystem capability."""

    def test_satisfies_protocol(self) -> None:
        """Verify LocalFileSystem is a FileSystem."""
        assert isinstance(LocalFileSystem(), FileSystem)

    def test_open_read_is_read_only(self, tmp_path: Path) -> None:
        """Verify files are opened for binary reading only."""
        path = tmp_path / "a.bin"
        path.write_bytes(b"abc")
        with LocalFileSystem().open_read(path) as handle:
            assert handle.read() == b"abc"
            assert handle.mode == "rb"
            assert not handle.writable()

    @pytest.mark.parametrize(("path", "name"), [("/a/b/c.txt", "c.txt"), ("c.txt", "c.txt"), ("/a/dir/", "dir")])
    def test_file_name_is_last_segment(self, path: str, name: str) -> None:
        """Verify filename derivation."""
        assert LocalFileSystem().file_name(path) == name


# -----------------------------------------------------------------------------
# UrlOpener Tests
# -----------------------------------------------------------------------------


class TestUrlOpener:
    """Tests for the URL capability."""

    @pytest.mark.parametrize(
        ("url", "name"),
        [
            ("https://example.com/a/b.zip", "b.zip"),
            ("https://example.com/a/dir/", "dir"),
            ("https://example.com/", ""),
            ("https://example.com/x%20y.txt?q=1#frag", "x y.txt"),
        ],
    )
    def test_file_name(self, url: str, name: str) -> None:
        """Verify the final path segment is used."""
        assert UrlOpener.file_name(httpx.URL(url)) == name

    def test_opens_file_urls(self, tmp_path: Path) -> None:
        """Verify file URLs open the local file."""
        path = tmp_path / "local.txt"
        path.write_bytes(b"file url")
        handle = UrlOpener().open(httpx.URL(path.as_uri()))
        try:
            assert handle.read() == b"file url"
        finally:
            handle.close()

    def test_sends_user_agent(self) -> None:
        """Verify configured user agent reaches the server."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["user-agent"])
            return httpx.Response(200, content=b"ok")

        handle = UrlOpener(user_agent="tests/1.0", transport=httpx.MockTransport(handler)).open(
            httpx.URL("http://example.com/x")
        )
        handle.close()
        assert seen == ["tests/1.0"]

    def test_error_status_raises(self) -> None:
        """Verify non-2xx responses raise."""
        opener = UrlOpener(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        with pytest.raises(httpx.HTTPStatusError):
            opener.open(httpx.URL("https://example.com/broken"))

    def test_unsupported_scheme(self) -> None:
        """Verify unknown schemes are rejected."""
        with pytest.raises(ValueError, match="Unsupported URL scheme"):
            UrlOpener().open(httpx.URL("ftp://example.com/file"))


# -----------------------------------------------------------------------------
# HttpResource Tests
# -----------------------------------------------------------------------------


class TestHttpResource:
    """Tests for reading streamed responses."""

    @staticmethod
    def _resource(content: bytes) -> tuple[HttpResource, httpx.Client]:
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=content)))
        response = client.send(client.build_request("GET", "http://example.com/"), stream=True)
        return HttpResource(client, response), client

    def test_read_in_sizes(self) -> None:
        """Verify sized reads drain the body in order."""
        resource, _ = self._resource(b"0123456789")
        assert resource.read(4) == b"0123"
        assert resource.read(4) == b"4567"
        assert resource.read(4) == b"89"
        assert resource.read(4) == b""
        resource.close()

    def test_read_all(self) -> None:
        """Verify a negative size reads everything."""
        resource, _ = self._resource(b"everything")
        assert resource.read() == b"everything"
        resource.close()

    def test_close_closes_client(self) -> None:
        """Verify closing releases the client."""
        resource, client = self._resource(b"x")
        resource.close()
        assert client.is_closed
