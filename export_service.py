# export_service.py
"""
Top-level export pipeline: DocumentModel in, tagged result out.

    logo fetch (await) -> vector layout            -> PDF writer
                       \\-> preview capture (await) -> page slicer -/

Every failure is caught at this single boundary and returned as a failed
ExportResult; no partial PDF is ever produced. At most one export per
document runs at a time, and the in-flight marker is always cleared so the
caller can retry.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from asset_loader import load_logo
from config import Config, ExportOptions
from document_model import DocumentKind, DocumentModel, PageGeometry, SystemConfig
from errors import CancelToken, ExportError, ExportInProgressError, RenderError
from page_slicer import PageSlicer
from pdf_writer import PDFWriter, output_filename
from preview_layout import DocumentPreviewView
from raster_capture import PreviewView, RasterCaptureAdapter
from vector_renderer import VectorRenderer

logger = logging.getLogger(__name__)


class ExportMode(str, Enum):
    VECTOR = "vector"
    RASTER = "raster"


def default_mode(kind: DocumentKind) -> ExportMode:
    # Invoices have always been exported from the branded preview, quotes drawn directly.
    return ExportMode.RASTER if kind is DocumentKind.INVOICE else ExportMode.VECTOR


@dataclass
class ExportResult:
    ok: bool
    filename: str
    content: bytes = b""
    page_count: int = 0
    mode: Optional[ExportMode] = None
    error: Optional[ExportError] = None

    @property
    def message(self) -> str:
        return self.error.user_message if self.error else ""


class ExportGuard:
    """Tracks which documents currently have an export in flight."""

    def __init__(self):
        self._active: set[str] = set()
        self._lock = threading.Lock()

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._active

    @contextlib.contextmanager
    def hold(self, key: str):
        # check and claim atomically
        with self._lock:
            if key in self._active:
                raise ExportInProgressError(f"export already running for {key}")
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)


# Process-wide guard shared by the web app and CLI tools
default_guard = ExportGuard()


async def _render_pages(document, logo, mode, options, geometry, view, cancel_token):
    if mode is ExportMode.VECTOR:
        try:
            return VectorRenderer(geometry, options).render(document, logo)
        except ExportError:
            raise
        except Exception as exc:
            raise RenderError(f"vector layout failed: {exc!r}") from exc

    view = view or DocumentPreviewView(brand_color=options.brand_color)
    adapter = RasterCaptureAdapter(view, scale=options.raster_scale, ready_timeout=options.capture_timeout)
    bitmap = await adapter.capture(document, logo, cancel_token=cancel_token)
    try:
        return PageSlicer(geometry).slice(bitmap)
    except ExportError:
        raise
    except Exception as exc:
        raise RenderError(f"bitmap slicing failed: {exc!r}") from exc


async def export_document(
    document: DocumentModel,
    branding: Optional[SystemConfig] = None,
    *,
    mode: ExportMode | str | None = None,
    options: Optional[ExportOptions] = None,
    geometry: Optional[PageGeometry] = None,
    view: Optional[PreviewView] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    cancel_token: Optional[CancelToken] = None,
    guard: Optional[ExportGuard] = None,
) -> ExportResult:
    options = options or ExportOptions.from_config()
    geometry = geometry or PageGeometry.letter()
    guard = guard or default_guard
    mode = ExportMode(mode) if mode else default_mode(document.kind)
    filename = output_filename(document)
    key = document.export_key

    logo_url = (branding.logo_url if branding else None) or document.header.logo_url
    company = (branding.company_name if branding else None) or document.header.company_name

    try:
        with guard.hold(key):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            logo = await load_logo(
                logo_url,
                client=http_client,
                timeout=options.logo_timeout,
                cancel_token=cancel_token,
            )
            pages = await _render_pages(document, logo, mode, options, geometry, view, cancel_token)
            content = PDFWriter(geometry).write(
                pages,
                title=f"{document.kind.label} - {document.document_number}",
                author=company or "",
            )
    except ExportError as exc:
        logger.warning("Export of %s failed: %s", key, exc)
        return ExportResult(ok=False, filename=filename, mode=mode, error=exc)
    except Exception as exc:
        logger.exception("Unexpected failure exporting %s", key)
        return ExportResult(ok=False, filename=filename, mode=mode, error=RenderError(repr(exc)))

    logger.info("Exported %s as %s (%s, %d page(s), %d bytes)", key, filename, mode.value, len(pages), len(content))
    return ExportResult(ok=True, filename=filename, content=content, page_count=len(pages), mode=mode)


def export_document_sync(document: DocumentModel, branding: Optional[SystemConfig] = None, **kwargs) -> ExportResult:
    return asyncio.run(export_document(document, branding, **kwargs))


def store_export(result: ExportResult, document: DocumentModel, exports_dir: str | None = None) -> str:
    """Write a successful export under EXPORTS_DIR/<kind>s/<year>/ and return the path."""
    if not result.ok:
        raise RenderError("refusing to store a failed export")
    out_dir = os.path.join(exports_dir or Config.EXPORTS_DIR, f"{document.kind.value}s", str(document.issue_date.year))
    os.makedirs(out_dir, exist_ok=True)
    pdf_path = os.path.join(out_dir, result.filename)
    with open(pdf_path, "wb") as fh:
        fh.write(result.content)
    return pdf_path
