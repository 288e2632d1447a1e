# errors.py
"""
Failure taxonomy for the export pipeline.

Every error carries a short user-facing message (shown as-is by the web
layer) separately from the technical detail used in logs.
"""
from __future__ import annotations


class ExportError(Exception):
    user_message = "Failed to generate PDF. Please try again."

    def __init__(self, detail: str = "", *, user_message: str | None = None):
        super().__init__(detail or self.user_message)
        self.detail = detail
        if user_message:
            self.user_message = user_message


class AssetLoadError(ExportError):
    """Logo fetch/decode failed. Recovered inside the asset loader."""
    user_message = "Logo could not be loaded."


class CaptureNotReadyError(ExportError):
    user_message = "Preview not ready"


class RenderError(ExportError):
    user_message = "Failed to generate PDF. Please try again."


class ExportCancelledError(ExportError):
    user_message = "Export was cancelled."


class ExportInProgressError(ExportError):
    user_message = "An export for this document is already in progress."


class CancelToken:
    """Checked by the pipeline before each suspension point (logo fetch, capture)."""

    def __init__(self):
        self._cancelled = False
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "") -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ExportCancelledError(self.reason or "cancelled by caller")
