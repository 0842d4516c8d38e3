"""
Source image loading for the mask editor.
Resolves a reference (path, file: URL, data: URL) to bytes and decodes it off the UI thread.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, unquote_to_bytes, urlparse
from urllib.request import url2pathname

from PIL import Image, ImageOps, ImageQt, UnidentifiedImageError
from PySide6.QtCore import QObject, QRunnable, Signal
from PySide6.QtGui import QImage

from errors import ImageDecodeError

logger = logging.getLogger(__name__)

# Host-supplied loader for schemes this module does not handle (http, storage buckets, ...)
Fetcher = Callable[[str], bytes]


@dataclass
class SourceImage:
    """Decoded bitmap plus its natural size."""
    reference: str
    image: Optional[QImage]
    width: int
    height: int

    @property
    def is_released(self) -> bool:
        return self.image is None

    def release(self):
        """Drop the decoded bitmap."""
        self.image = None


def read_reference(reference: str, fetcher: Optional[Fetcher] = None) -> bytes:
    """Return the raw encoded bytes behind a source reference."""
    if not reference:
        raise ImageDecodeError(reference or "", "empty image reference")

    if reference.startswith("data:"):
        return _read_data_url(reference)

    parsed = urlparse(reference)
    if parsed.scheme == "file":
        return _read_file(Path(url2pathname(unquote(parsed.path))), reference)

    # Bare paths, including Windows drive letters which parse as a one-letter scheme
    if not parsed.scheme or len(parsed.scheme) == 1:
        return _read_file(Path(reference), reference)

    if fetcher is None:
        raise ImageDecodeError(reference, f"no fetcher for '{parsed.scheme}' references")
    try:
        return fetcher(reference)
    except ImageDecodeError:
        raise
    except Exception as e:
        raise ImageDecodeError(reference, f"fetch failed: {e}") from e


def _read_file(path: Path, reference: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(reference, str(e)) from e


def _read_data_url(reference: str) -> bytes:
    header, sep, payload = reference.partition(",")
    if not sep:
        raise ImageDecodeError(reference, "malformed data URL")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(reference, f"invalid base64 payload: {e}") from e
    return unquote_to_bytes(payload)


def decode_image(data: bytes, reference: str = "<bytes>") -> SourceImage:
    """Decode encoded image bytes into a Qt bitmap with EXIF orientation applied."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img).convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(reference, str(e) or type(e).__name__) from e

    # copy() detaches the QImage from Pillow's buffer
    qimage = ImageQt.ImageQt(img).copy()
    if qimage.isNull():
        raise ImageDecodeError(reference, "decoded bitmap is empty")

    width, height = img.size
    logger.debug("Decoded %dx%d image from %s", width, height, reference[:80])
    return SourceImage(reference=reference, image=qimage, width=width, height=height)


def load_source_image(reference: str, fetcher: Optional[Fetcher] = None) -> SourceImage:
    """Read and decode a reference. Raises ImageDecodeError on any failure."""
    return decode_image(read_reference(reference, fetcher), reference)


class DecodeSignals(QObject):
    """Signals for DecodeWorker (QRunnable is not a QObject)."""
    decoded = Signal(int, object)  # generation, SourceImage
    failed = Signal(int, object)  # generation, ImageDecodeError


class DecodeWorker(QRunnable):
    """Decodes one reference on the thread pool and reports back by signal."""

    def __init__(self, generation: int, reference: str, fetcher: Optional[Fetcher] = None):
        super().__init__()
        self.generation = generation
        self.reference = reference
        self.fetcher = fetcher
        self.signals = DecodeSignals()
        self.setAutoDelete(True)

    def run(self):
        try:
            source = load_source_image(self.reference, self.fetcher)
        except ImageDecodeError as e:
            logger.warning("Decode failed: %s", e)
            self.signals.failed.emit(self.generation, e)
            return
        self.signals.decoded.emit(self.generation, source)
