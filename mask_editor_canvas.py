"""
Interactive surface for the artwork mask editor.
Shows the session preview and turns mouse, touch, wheel and arrow-key input
into transform changes.
"""

import logging
from typing import Optional

from PySide6.QtCore import Qt, QEvent, QPointF, QSize
from PySide6.QtGui import QImage, QKeyEvent, QMouseEvent, QPainter, QTouchEvent, QWheelEvent
from PySide6.QtWidgets import QMessageBox, QWidget

from drag_controller import pointer_from_mouse_event, pointer_from_touch_event
from editor_session import EditorSession, SessionState
from errors import ExportError
from render_pipeline import ExportResult
from transform_state import SCALE_STEP

logger = logging.getLogger(__name__)

# Arrow-key step in mask units
ARROW_KEY_STEP = 5.0


class MaskEditorCanvas(QWidget):
    """Square widget that displays the preview and drags the image under the pointer."""

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.frame: Optional[QImage] = None

        self.setAttribute(Qt.WA_AcceptTouchEvents, True)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setCursor(Qt.OpenHandCursor)
        self.setFixedSize(session.display_size, session.display_size)

        session.preview_updated.connect(self._on_preview_updated)

    def sizeHint(self) -> QSize:
        return QSize(self.session.display_size, self.session.display_size)

    def _sync_surface(self):
        """Push the current logical size and pixel density to the session."""
        if self.session.is_disposed:
            return
        size = min(self.width(), self.height())
        self.session.set_surface(size, self.devicePixelRatioF())

    def showEvent(self, event):
        super().showEvent(event)
        self._sync_surface()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._sync_surface()

    def changeEvent(self, event):
        super().changeEvent(event)
        # Moving to a screen with a different pixel density
        if event.type() == QEvent.Type.DevicePixelRatioChange:
            self._sync_surface()

    def _on_preview_updated(self, frame: QImage):
        self.frame = frame
        self.update()

    def paintEvent(self, event):
        if self.frame is None:
            return
        painter = QPainter(self)
        # The frame carries its device pixel ratio, so it fills the logical size
        painter.drawImage(QPointF(0, 0), self.frame)
        painter.end()

    # -- pointer input -----------------------------------------------------

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() == Qt.LeftButton and self.session.begin_drag(pointer_from_mouse_event(event)):
            self.setCursor(Qt.ClosedHandCursor)
            event.accept()
            return
        event.ignore()

    def mouseMoveEvent(self, event: QMouseEvent):
        if self.session.drag.is_dragging:
            self.session.drag_to(pointer_from_mouse_event(event))
            event.accept()
        else:
            event.ignore()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.LeftButton and self.session.drag.is_dragging:
            self.session.end_drag()
            self.setCursor(Qt.OpenHandCursor)
            event.accept()
        else:
            event.ignore()

    def leaveEvent(self, event):
        # Pointer leaving the surface ends the drag where it is
        self.session.end_drag()
        self.setCursor(Qt.OpenHandCursor)
        super().leaveEvent(event)

    def event(self, event):
        if event.type() in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate,
                            QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._handle_touch(event)
            return True
        return super().event(event)

    def _handle_touch(self, event: QTouchEvent):
        kind = event.type()
        if kind in (QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self.session.end_drag()
            event.accept()
            return

        pointer = pointer_from_touch_event(event)
        if pointer is None:
            # A second finger landed: stop moving rather than jump
            self.session.end_drag()
        elif kind == QEvent.Type.TouchBegin or not self.session.drag.is_dragging:
            self.session.begin_drag(pointer)
        else:
            self.session.drag_to(pointer)
        event.accept()

    def wheelEvent(self, event: QWheelEvent):
        """Wheel zooms the image, not the view."""
        if not self.session.has_image:
            event.ignore()
            return
        delta = event.angleDelta().y()
        if delta == 0:
            event.ignore()
            return
        self.session.zoom_by(SCALE_STEP if delta > 0 else -SCALE_STEP)
        event.accept()

    def keyPressEvent(self, event: QKeyEvent):
        """Arrow keys for fine positioning."""
        if not self.session.has_image:
            super().keyPressEvent(event)
            return

        step = ARROW_KEY_STEP * (10 if event.modifiers() & Qt.ShiftModifier else 1)
        if event.key() == Qt.Key_Left:
            self.session.nudge(-step, 0)
        elif event.key() == Qt.Key_Right:
            self.session.nudge(step, 0)
        elif event.key() == Qt.Key_Up:
            self.session.nudge(0, -step)
        elif event.key() == Qt.Key_Down:
            self.session.nudge(0, step)
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    # -- export ------------------------------------------------------------

    def request_export(self) -> Optional[ExportResult]:
        """Export, offering a retry when it fails."""
        while True:
            try:
                return self.session.export()
            except ExportError as e:
                if self.session.state is not SessionState.READY:
                    QMessageBox.warning(self, "Export Error", f"Failed to export image:\n{e}")
                    return None
                choice = QMessageBox.critical(
                    self,
                    "Export Error",
                    f"Failed to export image:\n{e}",
                    QMessageBox.Retry | QMessageBox.Cancel,
                )
                if choice != QMessageBox.Retry:
                    return None
