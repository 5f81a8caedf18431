"""Download destination resolution and response downloads."""

from __future__ import annotations

import httpx
import pytest

from HttpKit.Exchange import get
from HttpKit.Exchange.download import resolve_download_path
from HttpKit.Exchange.errors import ConfigurationError
from HttpKit.Exchange.testing import RecordingTransport, ResponseSpec

URL = httpx.URL("http://example.com/files/report%20final.pdf")


class TestResolveDownloadPath:
    def test_existing_directory_uses_url_file_name(self, tmp_path):
        assert resolve_download_path(tmp_path, URL) == tmp_path / "report final.pdf"

    def test_trailing_separator_creates_directory(self, tmp_path):
        target = resolve_download_path(f"{tmp_path}/new/", URL)

        assert target == tmp_path / "new" / "report final.pdf"
        assert (tmp_path / "new").is_dir()

    def test_backslash_separator_is_accepted(self, tmp_path):
        target = resolve_download_path(f"{tmp_path}\\nested\\", URL)

        assert target == tmp_path / "nested" / "report final.pdf"

    def test_explicit_file_creates_parent(self, tmp_path):
        target = resolve_download_path(tmp_path / "a" / "b" / "out.pdf", URL)

        assert target == tmp_path / "a" / "b" / "out.pdf"
        assert (tmp_path / "a" / "b").is_dir()
        assert not target.exists()

    def test_url_without_file_name(self, tmp_path):
        with pytest.raises(ConfigurationError):
            resolve_download_path(tmp_path, httpx.URL("http://example.com/files/"))


def test_download_writes_file(tmp_path):
    transport = RecordingTransport(ResponseSpec(body=b"%PDF-1.7"))
    request = get(URL, transport=transport)

    target = request.download(tmp_path)

    assert target == tmp_path / "report final.pdf"
    assert target.read_bytes() == b"%PDF-1.7"
