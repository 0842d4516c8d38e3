"""
Rendering for the mask editor.
The live preview and the final export share one transform composition and
one artwork painting routine so both show the same content inside the clip.
"""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import ImageQt
from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QFont, QImage, QPainter, QPen, QTransform

from errors import ExportError, ExportSurfaceUnavailable, NoImageToExport
from image_source import SourceImage
from mask_geometry import MaskGeometry, geometry
from transform_state import TransformState

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Upload an image to position it"

# Export encoding
DEFAULT_EXPORT_FORMAT = "JPEG"
DEFAULT_EXPORT_QUALITY = 92
_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}

# Guide strokes in mask units
FRAME_LINE_WIDTH = 4
GUIDE_LINE_WIDTH = 2
PLACEHOLDER_FONT_PX = 40


@dataclass(frozen=True)
class PreviewStyle:
    """Colors and text of the interactive preview."""
    background: str = "#f3f4f6"
    frame_color: str = "#e5e7eb"
    guide_color: str = "#9ca3af"
    placeholder_color: str = "#6b7280"
    placeholder_text: str = PLACEHOLDER_TEXT


def compose_transform(state: TransformState, mask: MaskGeometry, render_scale: float = 1.0) -> QTransform:
    """
    Map image-local coordinates to raster pixels.

    render_scale ∘ translate(center) ∘ rotate ∘ scale ∘ translate(x, y).
    The image is drawn centered on the local origin.
    """
    transform = QTransform()
    transform.scale(render_scale, render_scale)
    transform.translate(mask.outer_size / 2, mask.outer_size / 2)
    transform.rotate(state.rotation)
    transform.scale(state.scale, state.scale)
    transform.translate(state.x, state.y)
    return transform


def paint_artwork(painter: QPainter, source: SourceImage, state: TransformState,
                  mask: MaskGeometry, render_scale: float = 1.0):
    """Draw the transformed image clipped to the inner rounded rectangle."""
    base = QTransform.fromScale(render_scale, render_scale)

    # Clip is captured in device space using the transform active when it is set
    painter.setTransform(base)
    painter.setClipPath(mask.clip_path())

    painter.setTransform(compose_transform(state, mask, render_scale))
    painter.drawImage(QPointF(-source.width / 2, -source.height / 2), source.image)

    painter.setClipping(False)
    painter.setTransform(base)


def draw_guides(painter: QPainter, mask: MaskGeometry, style: PreviewStyle, render_scale: float = 1.0):
    """Stroke the outer frame and the inner clip outline."""
    painter.setTransform(QTransform.fromScale(render_scale, render_scale))
    painter.setBrush(Qt.NoBrush)

    inset = FRAME_LINE_WIDTH / 2
    painter.setPen(QPen(QColor(style.frame_color), FRAME_LINE_WIDTH))
    painter.drawRect(QRectF(inset, inset, mask.outer_size - FRAME_LINE_WIDTH, mask.outer_size - FRAME_LINE_WIDTH))

    painter.setPen(QPen(QColor(style.guide_color), GUIDE_LINE_WIDTH))
    painter.drawPath(mask.clip_path())


def _has_bitmap(source: Optional[SourceImage]) -> bool:
    return source is not None and source.image is not None and not source.image.isNull()


def _begin(painter: QPainter, target: QImage) -> bool:
    if not painter.begin(target):
        return False
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setRenderHint(QPainter.SmoothPixmapTransform, True)
    return True


class InteractiveRenderer:
    """Draws the display-resolution preview with guides on top of the artwork."""

    def __init__(self, mask: Optional[MaskGeometry] = None, style: Optional[PreviewStyle] = None):
        self.mask = mask or geometry()
        self.style = style or PreviewStyle()

    def render(self, state: TransformState, source: Optional[SourceImage],
               display_size: float, device_pixel_ratio: float = 1.0) -> QImage:
        """
        Render one preview frame.

        The backing raster is display_size * device_pixel_ratio pixels wide and
        carries the ratio, so its logical size stays display_size.
        """
        dpr = device_pixel_ratio if device_pixel_ratio > 0 else 1.0
        pixels = max(1, round(display_size * dpr))
        render_scale = pixels / self.mask.outer_size

        frame = QImage(pixels, pixels, QImage.Format_RGB32)
        frame.fill(QColor(self.style.background))

        painter = QPainter()
        if not _begin(painter, frame):
            logger.warning("Could not paint preview frame (%dpx)", pixels)
            return frame

        try:
            draw_guides(painter, self.mask, self.style, render_scale)

            if not _has_bitmap(source):
                self._draw_placeholder(painter, render_scale)
            else:
                paint_artwork(painter, source, state, self.mask, render_scale)
                # Guides again so they stay visible over the artwork
                draw_guides(painter, self.mask, self.style, render_scale)
        finally:
            painter.end()

        frame.setDevicePixelRatio(dpr)
        return frame

    def _draw_placeholder(self, painter: QPainter, render_scale: float):
        painter.setTransform(QTransform.fromScale(render_scale, render_scale))
        font = QFont()
        font.setPixelSize(PLACEHOLDER_FONT_PX)
        painter.setFont(font)
        painter.setPen(QColor(self.style.placeholder_color))
        painter.drawText(self.mask.outer_rect(), Qt.AlignCenter, self.style.placeholder_text)


@dataclass(frozen=True)
class ExportResult:
    """Encoded full-resolution artwork. Immutable once produced."""
    data: bytes
    format: str
    width: int
    height: int
    transform: TransformState

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES.get(self.format, "application/octet-stream")

    def to_data_url(self) -> str:
        """Inline-encoded form for hosts that upload data URLs."""
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    def save(self, path) -> Path:
        path = Path(path)
        path.write_bytes(self.data)
        return path


class ExportRenderer:
    """Renders the transform at full template resolution on white, without guides."""

    def __init__(self, mask: Optional[MaskGeometry] = None,
                 image_format: str = DEFAULT_EXPORT_FORMAT, quality: int = DEFAULT_EXPORT_QUALITY):
        self.mask = mask or geometry()
        self.image_format = image_format.upper()
        self.quality = int(quality)

    @property
    def size(self) -> int:
        return int(round(self.mask.outer_size))

    def render_raster(self, state: TransformState, source: Optional[SourceImage]) -> QImage:
        """Full-resolution raster before encoding."""
        if not _has_bitmap(source):
            raise NoImageToExport("No decoded image is available to export")

        raster = QImage(self.size, self.size, QImage.Format_RGB32)
        if raster.isNull():
            raise ExportSurfaceUnavailable(f"Could not allocate a {self.size}x{self.size} export surface")
        raster.fill(Qt.white)

        painter = QPainter()
        if not _begin(painter, raster):
            raise ExportSurfaceUnavailable("Could not start painting on the export surface")
        try:
            paint_artwork(painter, source, state, self.mask, render_scale=self.size / self.mask.outer_size)
        finally:
            painter.end()
        return raster

    def export(self, state: TransformState, source: Optional[SourceImage]) -> ExportResult:
        """Render and encode. Quality only affects compression, never geometry."""
        raster = self.render_raster(state, source)

        img = ImageQt.fromqimage(raster).convert("RGB")
        buffer = io.BytesIO()
        try:
            if self.image_format == "PNG":
                img.save(buffer, self.image_format)
            else:
                img.save(buffer, self.image_format, quality=self.quality)
        except (OSError, ValueError, KeyError) as e:
            raise ExportError(f"Failed to encode {self.image_format}: {e}") from e

        logger.info("Exported %dx%d %s (%d bytes) rotation=%s scale=%s offset=(%s, %s)",
                    img.width, img.height, self.image_format, buffer.tell(),
                    state.rotation, state.scale, state.x, state.y)
        return ExportResult(
            data=buffer.getvalue(),
            format=self.image_format,
            width=img.width,
            height=img.height,
            transform=state,
        )
