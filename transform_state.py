"""
Transform state for artwork placement inside the mask.
Holds (x, y, scale, rotation), the default fit, and clamping of live input.
"""

import logging
import math
from dataclasses import dataclass, asdict, replace
from typing import Callable, Mapping, Optional, Tuple

from PySide6.QtGui import QGuiApplication

from mask_geometry import MaskGeometry, geometry

logger = logging.getLogger(__name__)

# Bounds of the interactive controls
MIN_SCALE = 0.1
MAX_SCALE = 3.0
MIN_ROTATION = -180.0
MAX_ROTATION = 180.0

# Slider increments hosts use when building controls
SCALE_STEP = 0.05
ROTATION_STEP = 1.0

# Viewports smaller than this are treated as this size for the default fit
MIN_VIEWPORT_EXTENT = 800
FALLBACK_SCALE = 0.5


@dataclass(frozen=True)
class TransformState:
    """Image placement relative to the mask. x/y are mask units, rotation is degrees."""

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def compute_default_scale(viewport_width: Optional[float] = None,
                          viewport_height: Optional[float] = None,
                          mask: Optional[MaskGeometry] = None,
                          fallback: float = FALLBACK_SCALE) -> float:
    """
    Default scale so a first-load image fits the inner clip.

    Falls back to `fallback` when no viewport measurement is available.
    """
    if viewport_width is None or viewport_height is None:
        return fallback

    mask = mask or geometry()
    fit = max(
        mask.inner_width / max(viewport_width, MIN_VIEWPORT_EXTENT),
        mask.inner_height / max(viewport_height, MIN_VIEWPORT_EXTENT),
    )
    return min(fit, 1.0)


def measure_viewport() -> Optional[Tuple[int, int]]:
    """Available size of the primary screen, or None when there is no screen."""
    if QGuiApplication.instance() is None:
        return None
    screen = QGuiApplication.primaryScreen()
    if screen is None:
        return None
    size = screen.availableSize()
    if size.width() <= 0 or size.height() <= 0:
        return None
    return size.width(), size.height()


def _as_float(value) -> float:
    """Slider and text-box input as a float; unparsable input becomes NaN."""
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric transform input %r", value)
        return math.nan


def clamp_scale(value: float, current: float) -> float:
    """Clamp to [MIN_SCALE, MAX_SCALE]; NaN keeps the current value."""
    if math.isnan(value):
        return current
    return min(max(value, MIN_SCALE), MAX_SCALE)


def normalize_rotation(value: float, current: float) -> float:
    """
    Bring a rotation into [-180, 180].

    In-range values are kept verbatim (so both -180 and 180 survive),
    other finite values wrap by full turns, infinities clamp to the nearest
    bound and NaN keeps the current value.
    """
    if math.isnan(value):
        return current
    if math.isinf(value):
        return MAX_ROTATION if value > 0 else MIN_ROTATION
    if MIN_ROTATION <= value <= MAX_ROTATION:
        return value
    wrapped = math.fmod(value + 180.0, 360.0)
    if wrapped < 0:
        wrapped += 360.0
    return wrapped - 180.0


class TransformModel:
    """
    Mutable transform owned by one editing session.

    All writes go through the setters, which clamp instead of raising so a
    malformed slider value can never put the renderer in an invalid state.
    """

    def __init__(self, default_scale: Callable[[], float] = compute_default_scale):
        self._default_scale = default_scale
        self._state = TransformState(scale=self._default_scale())

    @property
    def state(self) -> TransformState:
        """Current value as an immutable snapshot."""
        return self._state

    def snapshot(self) -> TransformState:
        return self._state

    def default_state(self) -> TransformState:
        return TransformState(x=0.0, y=0.0, scale=self._default_scale(), rotation=0.0)

    def reset(self) -> TransformState:
        """Centered, unrotated, at the default fit scale."""
        self._state = self.default_state()
        return self._state

    def restore(self, state: TransformState) -> TransformState:
        """Resume a previously saved transform, clamping any out-of-range values."""
        self._state = self.default_state()
        self.set_position(state.x, state.y)
        self.set_scale(state.scale)
        self.set_rotation(state.rotation)
        return self._state

    def set_scale(self, value: float) -> float:
        scale = clamp_scale(_as_float(value), self._state.scale)
        self._state = replace(self._state, scale=scale)
        return scale

    def set_rotation(self, value: float) -> float:
        rotation = normalize_rotation(_as_float(value), self._state.rotation)
        self._state = replace(self._state, rotation=rotation)
        return rotation

    def set_position(self, x: float, y: float) -> Tuple[float, float]:
        """Unconstrained; the image may sit entirely outside the clip."""
        x, y = _as_float(x), _as_float(y)
        new_x = x if math.isfinite(x) else self._state.x
        new_y = y if math.isfinite(y) else self._state.y
        self._state = replace(self._state, x=new_x, y=new_y)
        return new_x, new_y

    def nudge(self, dx: float, dy: float) -> Tuple[float, float]:
        """Move relative to the current position (arrow keys)."""
        return self.set_position(self._state.x + dx, self._state.y + dy)

    def zoom_by(self, step: float) -> float:
        """Change scale relative to the current value (wheel, zoom buttons)."""
        return self.set_scale(self._state.scale + step)


def transform_from_mapping(data: Optional[Mapping], default_scale: float) -> TransformState:
    """
    Build a transform from saved settings.

    Missing keys default to the centered placement; a missing or zero scale
    falls back to `default_scale`.
    """
    data = data or {}
    scale = data.get("scale") or default_scale
    return TransformState(
        x=float(data.get("x") or 0.0),
        y=float(data.get("y") or 0.0),
        scale=float(scale),
        rotation=float(data.get("rotation") or 0.0),
    )


def format_scale(state: TransformState) -> str:
    return f"{round(state.scale * 100)}%"


def format_rotation(state: TransformState) -> str:
    # Fractional rotation is kept in state and only rounded here
    return f"{round(state.rotation)}°"


def format_position(state: TransformState) -> str:
    return f"X: {round(state.x)}, Y: {round(state.y)}"
