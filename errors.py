"""
Error types for the artwork mask editor.
Decode and export failures surface to the host; transform input never raises.
"""


class MaskEditorError(Exception):
    """Base class for all editor errors."""


class ImageDecodeError(MaskEditorError):
    """The source reference could not be read or decoded into a bitmap."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Failed to load image {_short(reference)}: {reason}")


class ExportError(MaskEditorError):
    """Base class for failures of an explicit export request."""


class NoImageToExport(ExportError):
    """Export was requested before a decoded image was available."""


class ExportSurfaceUnavailable(ExportError):
    """The full-resolution raster surface could not be created or painted."""


class ExportInProgress(ExportError):
    """A second export was requested while one was still running."""


class SessionDisposed(MaskEditorError):
    """The editing session was used after dispose()."""


def _short(reference: str, limit: int = 80) -> str:
    # data: URLs can be megabytes long
    if len(reference) <= limit:
        return reference
    return reference[:limit] + "..."
