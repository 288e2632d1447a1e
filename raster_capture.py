# raster_capture.py
"""
Drive an off-screen preview view and capture it as a single bitmap.

The document is passed to the view explicitly and the view signals when its
layout pass is done through the ``on_ready`` callback. Capture happens only
after that signal; a view that stays silent past the timeout fails the
export with CaptureNotReadyError.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Callable, Optional, Protocol

from PIL import Image

from asset_loader import LoadedImage
from document_model import DocumentModel
from errors import CancelToken, CaptureNotReadyError

logger = logging.getLogger(__name__)


class PreviewView(Protocol):
    def render(self, document: DocumentModel, logo: Optional[LoadedImage], scale: int,
               on_ready: Callable[[], None]): ...

    def capture(self) -> Optional[Image.Image]: ...

    def release(self) -> None: ...


class RasterCaptureAdapter:
    def __init__(self, view: PreviewView, *, scale: int = 2, ready_timeout: float = 2.0):
        self.view = view
        self.scale = scale
        self.ready_timeout = ready_timeout

    async def capture(
        self,
        document: DocumentModel,
        logo: Optional[LoadedImage] = None,
        *,
        cancel_token: Optional[CancelToken] = None,
    ) -> Image.Image:
        loop = asyncio.get_running_loop()
        ready = asyncio.Event()

        def on_ready() -> None:
            # safe to call from the view's own thread as well
            loop.call_soon_threadsafe(ready.set)

        try:
            pending = self.view.render(document, logo, self.scale, on_ready)
            if inspect.isawaitable(pending):
                await pending
            try:
                await asyncio.wait_for(ready.wait(), timeout=self.ready_timeout)
            except asyncio.TimeoutError as exc:
                raise CaptureNotReadyError(
                    f"view did not signal ready within {self.ready_timeout}s"
                ) from exc

            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            bitmap = self.view.capture()
            if bitmap is None or bitmap.width == 0 or bitmap.height == 0:
                raise CaptureNotReadyError("view produced no bitmap")
            logger.debug("Captured %s at %dx%d px", document.export_key, bitmap.width, bitmap.height)
            return bitmap.copy()
        finally:
            release = getattr(self.view, "release", None)
            if callable(release):
                release()
