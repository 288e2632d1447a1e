"""Tests for logo loading: every failure degrades to "no logo"."""

import asyncio
import base64

import httpx
import pytest

from asset_loader import LoadedImage, decode_image, load_logo
from errors import AssetLoadError, CancelToken, ExportCancelledError

LOGO_URL = "https://cdn.example.com/logo.png"


def _load(url, handler, **kwargs):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await load_logo(url, client=client, **kwargs)
    return asyncio.run(run())


class TestDecodeImage:

    def test_decodes_png(self, png_bytes):
        img = decode_image(png_bytes)
        assert (img.width, img.height) == (40, 20)
        assert img.format == "PNG"

    def test_rejects_garbage(self):
        with pytest.raises(AssetLoadError):
            decode_image(b"definitely not an image")

    def test_rejects_empty(self):
        with pytest.raises(AssetLoadError):
            decode_image(b"")

    def test_fit_keeps_aspect_ratio(self, png_bytes):
        img = decode_image(png_bytes)
        assert img.fit(20, 20) == (20.0, 10.0)
        assert isinstance(img, LoadedImage)


class TestLoadLogo:

    def test_success(self, png_bytes):
        logo = _load(LOGO_URL, lambda request: httpx.Response(200, content=png_bytes))
        assert logo is not None
        assert logo.data == png_bytes

    def test_http_error_returns_none(self, caplog):
        logo = _load(LOGO_URL, lambda request: httpx.Response(404))
        assert logo is None
        assert "Failed to load logo" in caplog.text

    def test_timeout_returns_none(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        assert _load(LOGO_URL, handler) is None

    def test_undecodable_body_returns_none(self):
        assert _load(LOGO_URL, lambda request: httpx.Response(200, content=b"<html>")) is None

    def test_no_url(self):
        assert asyncio.run(load_logo(None)) is None
        assert asyncio.run(load_logo("   ")) is None

    def test_data_url(self, png_bytes):
        url = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
        logo = asyncio.run(load_logo(url))
        assert logo is not None
        assert logo.width == 40

    def test_bad_data_url_returns_none(self):
        assert asyncio.run(load_logo("data:image/png;base64,@@@")) is None

    def test_cancelled_before_fetch(self, png_bytes):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, content=png_bytes)

        token = CancelToken()
        token.cancel("user navigated away")
        with pytest.raises(ExportCancelledError):
            _load(LOGO_URL, handler, cancel_token=token)
        assert calls == []
