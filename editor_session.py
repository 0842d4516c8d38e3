"""
Editing session for placing artwork inside the print mask.
Owns the decoded image, the transform, the scheduled redraw and the debounced
transform notification, and releases all of them on dispose().
"""

import logging
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union

from PySide6.QtCore import QObject, QThreadPool, Signal
from PySide6.QtGui import QImage

from drag_controller import DragController, PointerPosition, display_size_for_viewport
from editor_config import EditorConfig
from errors import ExportError, ExportInProgress, ImageDecodeError, SessionDisposed
from image_source import DecodeWorker, Fetcher, SourceImage
from mask_geometry import MaskGeometry, geometry
from render_pipeline import ExportRenderer, ExportResult, InteractiveRenderer
from scheduling import ScheduledSlot, frame_interval_ms
from transform_state import (
    TransformModel, TransformState, compute_default_scale, measure_viewport, transform_from_mapping
)

logger = logging.getLogger(__name__)

SavedTransform = Union[TransformState, Mapping]


class SessionState(Enum):
    IDLE = "idle"  # no image
    LOADING = "loading"  # decode pending
    READY = "ready"
    ERROR = "error"  # decode failed, renders like IDLE
    DISPOSED = "disposed"


class EditorSession(QObject):
    """
    One artwork editing session.

    Output events:
        transform_changed: settled transform, debounced by settle_delay_ms
        exported / export_failed: outcome of each export() call
    """

    transform_changed = Signal(object)  # TransformState
    exported = Signal(object)  # ExportResult
    export_failed = Signal(str)
    image_failed = Signal(str)
    state_changed = Signal(object)  # SessionState
    preview_updated = Signal(QImage)

    def __init__(self,
                 config: Optional[EditorConfig] = None,
                 mask: Optional[MaskGeometry] = None,
                 fetcher: Optional[Fetcher] = None,
                 viewport: Optional[Tuple[int, int]] = None,
                 thread_pool: Optional[QThreadPool] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self.config = config or EditorConfig()
        self.mask = mask or geometry()
        self._fetcher = fetcher
        self._viewport = viewport if viewport is not None else measure_viewport()
        self._thread_pool = thread_pool or QThreadPool.globalInstance()

        self.state = SessionState.IDLE
        self.source: Optional[SourceImage] = None
        self.transform = TransformModel(default_scale=self.default_scale)

        # Results for an older generation are dropped; workers are held until they report
        self._generation = 0
        self._decode_workers: Dict[int, DecodeWorker] = {}
        self._exporting = False

        viewport_width = self._viewport[0] if self._viewport else None
        self.display_size = display_size_for_viewport(
            viewport_width, self.config.max_display_size, self.config.display_margin
        )
        self.device_pixel_ratio = 1.0
        self.drag = DragController(self.display_size, self.mask)

        self.preview_renderer = InteractiveRenderer(self.mask, self.config.preview_style())
        self.export_renderer = ExportRenderer(self.mask, self.config.export_format, self.config.export_quality)
        self.last_frame: Optional[QImage] = None
        self.redraw_count = 0

        interval = self.config.frame_interval_ms or frame_interval_ms()
        self._redraw_slot = ScheduledSlot(self._redraw, interval, self, restart=False)
        self._notify_slot = ScheduledSlot(self._notify_transform, self.config.settle_delay_ms, self)

    # -- state -------------------------------------------------------------

    @property
    def is_disposed(self) -> bool:
        return self.state is SessionState.DISPOSED

    @property
    def has_image(self) -> bool:
        return self.state is SessionState.READY and self.source is not None

    @property
    def redraw_pending(self) -> bool:
        return self._redraw_slot.is_pending

    @property
    def notification_pending(self) -> bool:
        return self._notify_slot.is_pending

    def default_scale(self) -> float:
        if self._viewport is None:
            return self.config.fallback_scale
        width, height = self._viewport
        return compute_default_scale(width, height, self.mask, self.config.fallback_scale)

    def _set_state(self, state: SessionState):
        if state is self.state:
            return
        logger.debug("Session state %s -> %s", self.state.value, state.value)
        self.state = state
        self.state_changed.emit(state)

    def _ensure_alive(self):
        if self.is_disposed:
            raise SessionDisposed("Editing session has been disposed")

    # -- source image ------------------------------------------------------

    def set_source(self, reference: Optional[str], initial_transform: Optional[SavedTransform] = None):
        """
        Start editing a new image reference.

        The transform resets to the default fit unless a previously saved
        transform is supplied to resume editing. Decoding runs on the thread
        pool; the session is LOADING until it completes.
        """
        self._ensure_alive()
        generation = self._replace_source(initial_transform)

        if not reference:
            self._set_state(SessionState.IDLE)
            self._schedule_redraw()
            return

        self._set_state(SessionState.LOADING)
        self._schedule_redraw()

        worker = DecodeWorker(generation, reference, self._fetcher)
        worker.signals.decoded.connect(self._on_decoded)
        worker.signals.failed.connect(self._on_decode_failed)
        self._decode_workers[generation] = worker
        logger.info("Loading image %s", reference[:80])
        self._thread_pool.start(worker)

    def set_decoded_source(self, source: SourceImage, initial_transform: Optional[SavedTransform] = None):
        """Use an image the host already decoded, skipping the background load."""
        self._ensure_alive()
        self._replace_source(initial_transform)
        self._accept_source(source)

    def clear_source(self):
        self.set_source(None)

    def _replace_source(self, initial_transform: Optional[SavedTransform]) -> int:
        self._generation += 1
        self._release_source()
        self.drag.end()

        if initial_transform is None:
            self.transform.reset()
            self._notify_slot.schedule()
        else:
            # The host already holds the transform it is resuming from
            self._notify_slot.cancel()
            if not isinstance(initial_transform, TransformState):
                initial_transform = transform_from_mapping(initial_transform, self.default_scale())
            self.transform.restore(initial_transform)
        return self._generation

    def _release_source(self):
        if self.source is not None:
            self.source.release()
            self.source = None

    def _accept_source(self, source: SourceImage):
        self.source = source
        self._set_state(SessionState.READY)
        self._schedule_redraw()

    def _on_decoded(self, generation: int, source: SourceImage):
        self._decode_workers.pop(generation, None)
        if generation != self._generation or self.is_disposed:
            logger.debug("Dropping stale decode result (generation %d)", generation)
            source.release()
            return
        logger.info("Image ready: %dx%d", source.width, source.height)
        self._accept_source(source)

    def _on_decode_failed(self, generation: int, error: ImageDecodeError):
        self._decode_workers.pop(generation, None)
        if generation != self._generation or self.is_disposed:
            return
        self._release_source()
        self._set_state(SessionState.ERROR)
        self._schedule_redraw()
        self.image_failed.emit(str(error))

    # -- transform mutations -----------------------------------------------

    def set_scale(self, value: float) -> float:
        self._ensure_alive()
        scale = self.transform.set_scale(value)
        self._transform_mutated()
        return scale

    def set_rotation(self, value: float) -> float:
        self._ensure_alive()
        rotation = self.transform.set_rotation(value)
        self._transform_mutated()
        return rotation

    def set_position(self, x: float, y: float) -> Tuple[float, float]:
        self._ensure_alive()
        position = self.transform.set_position(x, y)
        self._transform_mutated()
        return position

    def nudge(self, dx: float, dy: float) -> Tuple[float, float]:
        self._ensure_alive()
        position = self.transform.nudge(dx, dy)
        self._transform_mutated()
        return position

    def zoom_by(self, step: float) -> float:
        self._ensure_alive()
        scale = self.transform.zoom_by(step)
        self._transform_mutated()
        return scale

    def reset(self) -> TransformState:
        self._ensure_alive()
        state = self.transform.reset()
        self._transform_mutated()
        return state

    def _transform_mutated(self):
        self._schedule_redraw()
        self._notify_slot.schedule()

    # -- dragging ----------------------------------------------------------

    def begin_drag(self, pointer: PointerPosition) -> bool:
        """Grab the image under the pointer. Ignored while there is no image."""
        self._ensure_alive()
        if not self.has_image:
            return False
        state = self.transform.state
        self.drag.begin(pointer, (state.x, state.y))
        return True

    def drag_to(self, pointer: PointerPosition) -> Optional[Tuple[float, float]]:
        self._ensure_alive()
        position = self.drag.move(pointer)
        if position is None:
            return None
        return self.set_position(*position)

    def end_drag(self):
        self.drag.end()

    # -- rendering ---------------------------------------------------------

    def set_surface(self, display_size: float, device_pixel_ratio: float = 1.0):
        """Logical edge length and pixel density of the interactive surface."""
        self._ensure_alive()
        self.display_size = max(1, int(display_size))
        self.device_pixel_ratio = device_pixel_ratio if device_pixel_ratio > 0 else 1.0
        self.drag.set_display_size(self.display_size)
        self._schedule_redraw()

    def _schedule_redraw(self):
        # At most one redraw per frame interval; a pending deadline is never pushed back
        self._redraw_slot.schedule()

    def render_now(self) -> QImage:
        """Redraw immediately, absorbing any pending scheduled redraw."""
        self._ensure_alive()
        self._redraw_slot.cancel()
        self._redraw()
        return self.last_frame

    def _redraw(self):
        self.last_frame = self.preview_renderer.render(
            self.transform.state, self.source, self.display_size, self.device_pixel_ratio
        )
        self.redraw_count += 1
        self.preview_updated.emit(self.last_frame)

    # -- notifications -----------------------------------------------------

    def _notify_transform(self):
        state = self.transform.state
        logger.debug("Transform settled: %s", state)
        self.transform_changed.emit(state)

    def flush_pending_notification(self) -> bool:
        """Report a pending settled transform now. Returns True if one was pending."""
        self._ensure_alive()
        return self._notify_slot.flush()

    # -- export ------------------------------------------------------------

    def export(self) -> ExportResult:
        """
        Render the current transform at full template resolution and encode it.

        Not reentrant. Emits exported on success; emits export_failed and
        re-raises on failure.
        """
        self._ensure_alive()
        if self._exporting:
            error = ExportInProgress("An export is already running")
            logger.warning("%s", error)
            self.export_failed.emit(str(error))
            raise error

        self._exporting = True
        snapshot = self.transform.snapshot()
        try:
            result = self.export_renderer.export(snapshot, self.source if self.has_image else None)
        except ExportError as e:
            logger.error("Export failed: %s", e)
            self.export_failed.emit(str(e))
            raise
        finally:
            self._exporting = False

        self.exported.emit(result)
        return result

    # -- teardown ----------------------------------------------------------

    def dispose(self):
        """End the session: cancel scheduled work, drop in-flight decodes, free the bitmap."""
        if self.is_disposed:
            return
        self._redraw_slot.cancel()
        self._notify_slot.cancel()
        self._generation += 1
        self.drag.end()
        self._release_source()
        self.last_frame = None
        self._set_state(SessionState.DISPOSED)
        logger.info("Editing session disposed")
