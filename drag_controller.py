"""
Drag controller for positioning artwork.
Converts pointer positions on the display surface into mask-space offsets.
"""

import logging
from typing import NamedTuple, Optional, Tuple

from PySide6.QtGui import QMouseEvent, QTouchEvent

from mask_geometry import MaskGeometry, geometry

logger = logging.getLogger(__name__)

MAX_DISPLAY_SIZE = 600
DISPLAY_MARGIN = 100


class PointerPosition(NamedTuple):
    """A single pointer location in logical surface units (top-left origin)."""
    x: float
    y: float


def pointer_from_mouse_event(event: QMouseEvent) -> PointerPosition:
    pos = event.position()
    return PointerPosition(pos.x(), pos.y())


def pointer_from_touch_event(event: QTouchEvent) -> Optional[PointerPosition]:
    """Single-contact touches become a pointer; multi-touch gestures do not move the image."""
    points = event.points()
    if len(points) != 1:
        return None
    pos = points[0].position()
    return PointerPosition(pos.x(), pos.y())


def display_size_for_viewport(viewport_width: Optional[float],
                              max_size: int = MAX_DISPLAY_SIZE,
                              margin: int = DISPLAY_MARGIN) -> int:
    """Logical edge length of the interactive surface for a viewport width."""
    if viewport_width is None:
        return max_size
    return max(1, int(min(max_size, viewport_width - margin)))


class DragController:
    """
    Keeps the mask-space point grabbed at drag start under the pointer.

    ratio = display_size / outer_size maps mask units to surface units.
    """

    def __init__(self, display_size: float, mask: Optional[MaskGeometry] = None):
        self.mask = mask or geometry()
        self.display_size = float(display_size)
        self.drag_offset: Optional[Tuple[float, float]] = None
        # Ratio in effect for the active drag
        self._drag_ratio: Optional[float] = None

    @property
    def ratio(self) -> float:
        return self.display_size / self.mask.outer_size

    @property
    def is_dragging(self) -> bool:
        return self.drag_offset is not None

    def set_display_size(self, display_size: float):
        """Update the surface size. An active drag keeps the ratio it started with."""
        self.display_size = float(display_size)

    def mask_point(self, pointer: PointerPosition, ratio: Optional[float] = None) -> Tuple[float, float]:
        """Surface point expressed in mask units."""
        ratio = ratio or self.ratio
        return pointer.x / ratio, pointer.y / ratio

    def begin(self, pointer: PointerPosition, position: Tuple[float, float]):
        """Start a drag with the image currently at `position`."""
        self._drag_ratio = self.ratio
        px, py = self.mask_point(pointer, self._drag_ratio)
        self.drag_offset = (px - position[0], py - position[1])
        logger.debug("Drag started at %s, offset %s", pointer, self.drag_offset)

    def move(self, pointer: PointerPosition) -> Optional[Tuple[float, float]]:
        """New image position for a pointer move, or None when not dragging."""
        if self.drag_offset is None:
            return None
        px, py = self.mask_point(pointer, self._drag_ratio)
        return px - self.drag_offset[0], py - self.drag_offset[1]

    def end(self):
        """Finish the drag. The last position stays as it is."""
        self.drag_offset = None
        self._drag_ratio = None
