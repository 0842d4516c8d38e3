"""
Mask geometry for the print template.
The outer square and the centered inner rounded rectangle that clips the artwork.
"""

from dataclasses import dataclass

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QPainterPath


# Template dimensions in mask units (fixed physical aspect ratio)
MASK_OUTER_SIZE = 1400
MASK_INNER_WIDTH = 827
MASK_INNER_HEIGHT = 1197
MASK_CORNER_RADIUS = 138


@dataclass(frozen=True)
class MaskGeometry:
    """Outer frame and inner clip rectangle of the print template."""

    outer_size: float
    inner_width: float
    inner_height: float
    corner_radius: float

    @property
    def inner_x(self) -> float:
        return (self.outer_size - self.inner_width) / 2

    @property
    def inner_y(self) -> float:
        return (self.outer_size - self.inner_height) / 2

    @property
    def center(self) -> QPointF:
        half = self.outer_size / 2
        return QPointF(half, half)

    def inner_rect(self) -> QRectF:
        """Inner clip rectangle (without rounded corners) in mask units."""
        return QRectF(self.inner_x, self.inner_y, self.inner_width, self.inner_height)

    def outer_rect(self) -> QRectF:
        return QRectF(0, 0, self.outer_size, self.outer_size)

    def clip_path(self) -> QPainterPath:
        """
        Inner rounded rectangle as a closed path.

        Corners are quadratic curves whose control point is the sharp corner,
        so the clip and the guide stroke trace exactly the same outline.
        """
        x, y = self.inner_x, self.inner_y
        w, h = self.inner_width, self.inner_height
        r = self.corner_radius

        path = QPainterPath()
        path.moveTo(x + r, y)
        path.lineTo(x + w - r, y)
        path.quadTo(x + w, y, x + w, y + r)
        path.lineTo(x + w, y + h - r)
        path.quadTo(x + w, y + h, x + w - r, y + h)
        path.lineTo(x + r, y + h)
        path.quadTo(x, y + h, x, y + h - r)
        path.lineTo(x, y + r)
        path.quadTo(x, y, x + r, y)
        path.closeSubpath()
        return path


_GEOMETRY = MaskGeometry(
    outer_size=MASK_OUTER_SIZE,
    inner_width=MASK_INNER_WIDTH,
    inner_height=MASK_INNER_HEIGHT,
    corner_radius=MASK_CORNER_RADIUS,
)


def geometry() -> MaskGeometry:
    """Return the template geometry. Always the same value."""
    return _GEOMETRY
