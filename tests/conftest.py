import io
import os
import time

# Must be set before any Qt module creates the application
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image
from PySide6.QtCore import QCoreApplication, QEventLoop, QThreadPool
from PySide6.QtWidgets import QApplication

from editor_config import EditorConfig
from editor_session import EditorSession
from image_source import decode_image


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


def _wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents(QEventLoop.AllEvents, 20)
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def settle():
    """Run the event loop long enough for every pending timer to fire."""
    def _settle(session=None, timeout: float = 5.0):
        QThreadPool.globalInstance().waitForDone(int(timeout * 1000))
        if session is None:
            _wait_until(lambda: False, timeout=0.3)
            return
        assert _wait_until(
            lambda: not session.redraw_pending and not session.notification_pending, timeout
        )
    return _settle


def png_bytes(size, color=(255, 0, 0, 255), mode="RGBA") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def make_source():
    """Decoded SourceImage of a solid color (or a given PIL image)."""
    def _make(size=(800, 600), color=(255, 0, 0, 255), image=None):
        if image is not None:
            buffer = io.BytesIO()
            image.save(buffer, "PNG")
            return decode_image(buffer.getvalue(), "test://generated")
        return decode_image(png_bytes(size, color), "test://solid")
    return _make


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "artwork.png"
    path.write_bytes(png_bytes((640, 480), (0, 128, 255, 255)))
    return path


@pytest.fixture
def fast_config():
    return EditorConfig(settle_delay_ms=40, frame_interval_ms=5)


@pytest.fixture
def session(fast_config):
    editor = EditorSession(config=fast_config, viewport=(2560, 1600))
    yield editor
    editor.dispose()
