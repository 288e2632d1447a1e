"""Tests for the export pipeline boundary."""

import asyncio
import io
import threading

import httpx
import pytest
from pypdf import PdfReader

from config import ExportOptions
from document_model import DocumentKind, SystemConfig
from errors import (
    CancelToken,
    CaptureNotReadyError,
    ExportCancelledError,
    ExportInProgressError,
    RenderError,
)
from export_service import (
    ExportGuard,
    ExportMode,
    ExportResult,
    default_mode,
    export_document,
    export_document_sync,
    store_export,
)

LOGO_URL = "https://cdn.example.com/logo.png"
FAST = ExportOptions(raster_scale=1, capture_timeout=0.5, logo_timeout=0.5)


def _export(document, branding=None, handler=None, **kwargs) -> ExportResult:
    kwargs.setdefault("options", FAST)
    kwargs.setdefault("guard", ExportGuard())

    async def run():
        if handler is None:
            return await export_document(document, branding, **kwargs)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await export_document(document, branding, http_client=client, **kwargs)
    return asyncio.run(run())


def _pdf_pages(result: ExportResult) -> int:
    return len(PdfReader(io.BytesIO(result.content)).pages)


class NeverReadyView:
    def render(self, document, logo, scale, on_ready):
        pass

    def capture(self):
        return None

    def release(self):
        pass


class BrokenView(NeverReadyView):
    def render(self, document, logo, scale, on_ready):
        raise RuntimeError("layout exploded")


# ---------------------------------------------------------------------------
# Successful exports
# ---------------------------------------------------------------------------

class TestExportDocument:

    def test_default_modes(self):
        assert default_mode(DocumentKind.INVOICE) is ExportMode.RASTER
        assert default_mode(DocumentKind.QUOTE) is ExportMode.VECTOR

    def test_quote_vector_export(self, quote_document):
        result = _export(quote_document)
        assert result.ok
        assert result.mode is ExportMode.VECTOR
        assert result.filename == "quote-Q-2024.pdf"
        assert result.error is None
        assert _pdf_pages(result) == result.page_count == 1

    def test_invoice_raster_export(self, invoice_document):
        result = _export(invoice_document)
        assert result.ok
        assert result.mode is ExportMode.RASTER
        assert result.filename == "Invoice-INV-1001.pdf"
        assert _pdf_pages(result) == result.page_count

    def test_mode_override(self, invoice_document):
        result = _export(invoice_document, mode="vector")
        assert result.ok
        assert result.mode is ExportMode.VECTOR

    def test_logo_from_branding(self, quote_document, png_bytes):
        branding = SystemConfig(company_name="FibreUS", logo_url=LOGO_URL)
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, content=png_bytes)

        result = _export(quote_document, branding, handler)
        assert result.ok
        assert seen == [LOGO_URL]

    def test_logo_timeout_still_exports(self, quote_document, png_bytes):
        """A logo timeout only drops the logo; page count is unchanged."""
        branding = SystemConfig(company_name="FibreUS", logo_url=LOGO_URL)

        def slow(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with_logo = _export(quote_document, branding, lambda request: httpx.Response(200, content=png_bytes))
        without = _export(quote_document, branding, slow)
        assert without.ok
        assert without.page_count == with_logo.page_count

    def test_repeat_export_is_stable(self, long_quote, invoice_document):
        for doc in (long_quote, invoice_document):
            first = _export(doc)
            second = _export(doc)
            assert first.page_count == second.page_count

    def test_sync_wrapper(self, quote_document):
        result = export_document_sync(quote_document, options=FAST, guard=ExportGuard())
        assert result.ok


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestExportFailures:

    def test_capture_not_ready(self, invoice_document):
        guard = ExportGuard()
        result = _export(invoice_document, view=NeverReadyView(), guard=guard)
        assert not result.ok
        assert isinstance(result.error, CaptureNotReadyError)
        assert result.message == "Preview not ready"
        assert result.content == b""
        assert not guard.is_active(invoice_document.export_key)

    def test_layout_crash_is_render_error(self, invoice_document):
        result = _export(invoice_document, view=BrokenView())
        assert not result.ok
        assert isinstance(result.error, RenderError)
        assert result.message == "Failed to generate PDF. Please try again."

    def test_cancelled(self, quote_document):
        token = CancelToken()
        token.cancel("closed")
        result = _export(quote_document, cancel_token=token)
        assert not result.ok
        assert isinstance(result.error, ExportCancelledError)

    def test_second_export_rejected_while_in_flight(self, quote_document):
        guard = ExportGuard()
        with guard.hold(quote_document.export_key):
            result = _export(quote_document, guard=guard)
        assert not result.ok
        assert isinstance(result.error, ExportInProgressError)

        # guard cleared, retry works
        assert _export(quote_document, guard=guard).ok

    def test_guard_is_per_document(self, quote_document, invoice_document):
        guard = ExportGuard()
        with guard.hold(invoice_document.export_key):
            assert _export(quote_document, guard=guard).ok

    def test_concurrent_holds_admit_one(self):
        guard = ExportGuard()
        workers = 16
        barrier = threading.Barrier(workers)
        release = threading.Event()
        acquired, rejected = [], []

        def worker():
            barrier.wait()
            try:
                with guard.hold("quote:Q-1"):
                    acquired.append(1)
                    release.wait(timeout=5)
            except ExportInProgressError:
                rejected.append(1)
                if len(rejected) == workers - 1:
                    release.set()

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(acquired) == 1
        assert len(rejected) == workers - 1
        assert not guard.is_active("quote:Q-1")


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class TestStoreExport:

    def test_writes_under_kind_and_year(self, quote_document, tmp_path):
        result = _export(quote_document)
        path = store_export(result, quote_document, str(tmp_path))
        assert path == str(tmp_path / "quotes" / "2024" / "quote-Q-2024.pdf")
        with open(path, "rb") as fh:
            assert fh.read() == result.content

    def test_refuses_failed_result(self, quote_document, tmp_path):
        failed = ExportResult(ok=False, filename="quote-Q-2024.pdf", error=RenderError("boom"))
        with pytest.raises(RenderError):
            store_export(failed, quote_document, str(tmp_path))
