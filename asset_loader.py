# asset_loader.py
"""
Resolve the company logo URL into an embeddable image.

Failure to load the logo never aborts an export: every network or decode
problem is logged and the document is rendered without branding. No retries.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from PIL import Image
from reportlab.lib.utils import ImageReader

from config import Config
from errors import AssetLoadError, CancelToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedImage:
    data: bytes
    width: int
    height: int
    format: str = "PNG"

    def pil_image(self) -> Image.Image:
        img = Image.open(io.BytesIO(self.data))
        return img.convert("RGBA")

    def reader(self) -> ImageReader:
        return ImageReader(io.BytesIO(self.data))

    def fit(self, max_w: float, max_h: float) -> tuple[float, float]:
        """Largest (w, h) inside the box that keeps the aspect ratio."""
        scale = min(max_w / float(self.width), max_h / float(self.height))
        return float(self.width) * scale, float(self.height) * scale


def decode_image(data: bytes) -> LoadedImage:
    if not data:
        raise AssetLoadError("empty image body")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
            fmt = img.format or "PNG"
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise AssetLoadError(f"undecodable image: {exc}") from exc
    if width <= 0 or height <= 0:
        raise AssetLoadError("image has no pixels")
    return LoadedImage(data=data, width=width, height=height, format=fmt)


def _decode_data_url(url: str) -> bytes:
    head, sep, payload = url.partition(",")
    if not sep:
        raise AssetLoadError("malformed data URL")
    try:
        if head.endswith(";base64"):
            return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AssetLoadError(f"bad base64 payload: {exc}") from exc
    return payload.encode("utf-8")


async def _fetch_bytes(url: str, client: httpx.AsyncClient) -> bytes:
    try:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise AssetLoadError(f"fetch failed: {exc!r}") from exc
    return response.content


async def load_logo(
    url: Optional[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float | None = None,
    cancel_token: Optional[CancelToken] = None,
) -> Optional[LoadedImage]:
    url = (url or "").strip()
    if not url:
        return None
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    try:
        if url.startswith("data:"):
            data = _decode_data_url(url)
        elif client is not None:
            data = await _fetch_bytes(url, client)
        else:
            t = Config.LOGO_FETCH_TIMEOUT if timeout is None else timeout
            async with httpx.AsyncClient(timeout=t) as own_client:
                data = await _fetch_bytes(url, own_client)
        return decode_image(data)
    except AssetLoadError as exc:
        logger.warning("Failed to load logo from %s: %s", url[:120], exc.detail)
        return None
