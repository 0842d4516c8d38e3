import time

import pytest
from PySide6.QtCore import QCoreApplication

from scheduling import ScheduledSlot, frame_interval_ms


@pytest.mark.parametrize("rate,expected", [(60, 17), (120, 8), (144, 7), (0, 17), (-5, 17)])
def test_frame_interval_from_refresh_rate(rate, expected):
    assert frame_interval_ms(rate) == expected


def test_frame_interval_from_screen_is_positive():
    assert frame_interval_ms() >= 1


def test_rescheduling_replaces_pending_run(wait_until, settle):
    calls = []
    slot = ScheduledSlot(lambda: calls.append(1), delay_ms=10)
    for _ in range(25):
        slot.schedule()
    assert slot.is_pending
    assert wait_until(lambda: not slot.is_pending)
    settle()
    assert calls == [1]


def test_cancel_drops_pending_run(settle):
    calls = []
    slot = ScheduledSlot(lambda: calls.append(1), delay_ms=10)
    slot.schedule()
    assert slot.cancel() is True
    assert slot.cancel() is False
    settle()
    assert calls == []


def test_flush_runs_pending_task_immediately():
    calls = []
    slot = ScheduledSlot(lambda: calls.append(1), delay_ms=10_000)
    assert slot.flush() is False
    slot.schedule()
    assert slot.flush() is True
    assert calls == [1]
    assert not slot.is_pending


def _request_repeatedly(slot, duration: float = 0.3, every: float = 0.005):
    deadline = time.monotonic() + duration
    while time.monotonic() < deadline:
        slot.schedule()
        QCoreApplication.processEvents()
        time.sleep(every)


def test_frame_slot_keeps_deadline_under_continuous_requests(settle):
    calls = []
    slot = ScheduledSlot(lambda: calls.append(1), delay_ms=16, restart=False)
    _request_repeatedly(slot)
    assert len(calls) >= 5
    settle()
    assert not slot.is_pending


def test_debounce_slot_waits_for_requests_to_stop(settle):
    calls = []
    slot = ScheduledSlot(lambda: calls.append(1), delay_ms=150)
    _request_repeatedly(slot)
    assert calls == []
    settle()
    assert calls == [1]
