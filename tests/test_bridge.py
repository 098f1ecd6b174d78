"""Tests for genpatch.bridge – the bridge concurrency contract."""

import threading
import time

import pytest

from genpatch.bridge import (
    BridgeBusy,
    BridgeError,
    BridgeLimits,
    BridgeMonitor,
    BridgePhase,
    BridgeTimeout,
    RequestCodeAllocator,
    SpeechEventQueue,
    SpeechSessions,
)
from genpatch.markers import RequestCodeRange


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

def test_default_limits() -> None:
    limits = BridgeLimits()
    assert limits.default_timeout_ms == 120_000
    assert limits.speech_start_timeout_ms == 10_000
    assert limits.speech_queue_capacity == 128
    assert limits.speech_drain_max == 64
    assert limits.amplitude_interval_ms == 100
    assert limits.validate() == []


def test_invalid_limits() -> None:
    issues = BridgeLimits(speech_queue_capacity=0, default_timeout_ms=-1).validate()
    assert len(issues) == 2


# ---------------------------------------------------------------------------
# Request codes
# ---------------------------------------------------------------------------

def test_request_codes_wrap_within_range() -> None:
    alloc = RequestCodeAllocator(RequestCodeRange(41000, 3))
    assert [alloc.next() for _ in range(5)] == [41000, 41001, 41002, 41000, 41001]


# ---------------------------------------------------------------------------
# Monitor
# ---------------------------------------------------------------------------

def test_monitor_returns_value_from_callback_thread() -> None:
    monitor = BridgeMonitor()

    def launch(code: int) -> None:
        threading.Timer(0.05, monitor.complete, args=(code, "content://tree/1")).start()

    assert monitor.call(41000, launch, timeout=5) == "content://tree/1"
    assert monitor.phase == BridgePhase.IDLE


def test_monitor_cancelled_outcome_is_value() -> None:
    monitor = BridgeMonitor()
    assert monitor.call(41001, lambda code: monitor.complete(code, ""), timeout=1) == ""


def test_monitor_timeout_bounded_by_deadline() -> None:
    monitor = BridgeMonitor()
    t0 = time.monotonic()
    with pytest.raises(BridgeTimeout):
        monitor.call(41000, lambda code: None, timeout=0.2)
    elapsed = time.monotonic() - t0
    assert 0.2 <= elapsed < 2.0
    assert monitor.phase == BridgePhase.IDLE


def test_monitor_busy_while_waiting() -> None:
    monitor = BridgeMonitor()
    monitor.begin(41000)
    with pytest.raises(BridgeBusy):
        monitor.begin(41001)


def test_monitor_ignores_stale_request_code() -> None:
    monitor = BridgeMonitor()
    monitor.begin(41005)
    assert not monitor.complete(41004, "late")
    assert monitor.complete(41005, "fresh")
    assert monitor.wait(41005, timeout=1) == "fresh"


def test_monitor_launch_failure_surfaces_as_error() -> None:
    monitor = BridgeMonitor()

    def launch(code: int) -> None:
        raise RuntimeError("no activity")

    with pytest.raises(BridgeError, match="no activity"):
        monitor.call(41000, launch, timeout=1)
    assert monitor.phase == BridgePhase.IDLE


# ---------------------------------------------------------------------------
# Speech event queue
# ---------------------------------------------------------------------------

def test_queue_bound_keeps_newest() -> None:
    clock = FakeClock()
    queue = SpeechEventQueue(capacity=128, amplitude_interval=0.1, clock=clock)
    for i in range(200):
        clock.now = float(i)
        assert queue.push_amplitude(1, float(i))
    assert len(queue) == 128
    assert queue.dropped == 72
    first = queue.drain(1)[0]
    assert first["value"] == 72.0


def test_amplitude_rate_limited() -> None:
    clock = FakeClock()
    queue = SpeechEventQueue(amplitude_interval=0.1, clock=clock)
    assert queue.push_amplitude(1, 1.0)
    clock.now = 0.05
    assert not queue.push_amplitude(1, 2.0)
    clock.now = 0.1
    assert queue.push_amplitude(1, 3.0)
    assert [e["value"] for e in queue.drain()] == [1.0, 3.0]


def test_drain_is_fifo_and_capped() -> None:
    queue = SpeechEventQueue(capacity=128, drain_max=64)
    for i in range(100):
        queue.push(1, "partial", text=str(i))
    batch = queue.drain(1000)
    assert len(batch) == 64
    assert [e["text"] for e in batch[:3]] == ["0", "1", "2"]
    assert len(queue.drain(0)) == 36
    assert queue.drain() == []


def test_event_shape() -> None:
    queue = SpeechEventQueue()
    event = queue.push(7, "final", text="hello")
    assert event == {"type": "final", "session": 7, "text": "hello"}
    with pytest.raises(ValueError):
        queue.push(7, "unknown")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def test_single_active_session() -> None:
    sessions = SpeechSessions()
    s1 = sessions.start()
    assert s1 == 1
    with pytest.raises(BridgeBusy):
        sessions.start()
    assert sessions.finish(s1)
    assert sessions.start() == 2


def test_stop_and_cancel_match_session() -> None:
    sessions = SpeechSessions()
    s = sessions.start()
    assert not sessions.stop(s + 1)
    assert not sessions.cancel(s + 1)
    assert sessions.stop(s)
    assert sessions.cancel(s)
    assert sessions.queue.drain() == [{"type": "state", "session": s, "state": "cancelled"}]
    assert not sessions.cancel(s)


def test_start_clears_previous_events() -> None:
    sessions = SpeechSessions()
    s = sessions.start()
    sessions.queue.push(s, "partial", text="old")
    sessions.finish(s)
    sessions.start()
    assert len(sessions.queue) == 0
