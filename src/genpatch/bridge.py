"""Executable model of the async-to-sync bridges the activity patcher generates.

The Kotlin emitted by :mod:`genpatch.synth` cannot run here, so the contract
it implements lives in this module too, written against ``threading``:

* :class:`BridgeMonitor` – one lock + condition + outcome per bridge, phases
  ``idle → waiting → done``.  A blocking ``wait`` always returns: value,
  failure, or :class:`BridgeTimeout`.
* :class:`SpeechEventQueue` – bounded FIFO, drop-oldest, amplitude events
  rate-limited at the producer, drained in FIFO batches.
* :class:`SpeechSessions` – one active recognition session; stop/cancel only
  act on the matching session id.

:class:`BridgeLimits` holds the numbers shared with the synthesizer so the
model and the generated code cannot drift apart.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .markers import RequestCodeRange


@dataclass(frozen=True)
class BridgeLimits:
    """Tunables baked into the generated bridge code."""

    default_timeout_ms: int = 120_000
    speech_start_timeout_ms: int = 10_000
    speech_queue_capacity: int = 128
    speech_drain_max: int = 64
    amplitude_interval_ms: int = 100

    def validate(self) -> list[str]:
        issues: list[str] = []
        if self.default_timeout_ms <= 0:
            issues.append("default_timeout_ms must be positive")
        if self.speech_start_timeout_ms <= 0:
            issues.append("speech_start_timeout_ms must be positive")
        if self.speech_queue_capacity <= 0:
            issues.append("speech_queue_capacity must be positive")
        if self.speech_drain_max <= 0:
            issues.append("speech_drain_max must be positive")
        if self.amplitude_interval_ms < 0:
            issues.append("amplitude_interval_ms must not be negative")
        return issues


class BridgeError(Exception):
    """Raised by a blocking bridge entry point."""


class BridgeBusy(BridgeError):
    """A request of this bridge is already in flight."""


class BridgeTimeout(BridgeError):
    """The platform callback did not arrive before the deadline."""


class BridgePhase(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    DONE = "done"


class RequestCodeAllocator:
    """Monotonic request codes folded into a capability's fixed range."""

    def __init__(self, codes: RequestCodeRange):
        self.codes = codes
        self._seq = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            code = self.codes.base + (self._seq % self.codes.span)
            self._seq += 1
            return code


class BridgeMonitor:
    """Rendezvous between the dispatch thread and the platform callback thread."""

    def __init__(self, default_timeout: float = 120.0):
        self.default_timeout = default_timeout
        self._cond = threading.Condition(threading.Lock())
        self.phase = BridgePhase.IDLE
        self.request_code: Optional[int] = None
        self._value: Any = None
        self._error: Optional[str] = None

    def begin(self, request_code: int) -> None:
        with self._cond:
            if self.phase == BridgePhase.WAITING:
                raise BridgeBusy("busy")
            self.phase = BridgePhase.WAITING
            self.request_code = request_code
            self._value = None
            self._error = None

    def complete(self, request_code: int, value: Any = None, error: Optional[str] = None) -> bool:
        """Record the outcome for *request_code*; stale or unknown codes are ignored."""
        with self._cond:
            if self.phase != BridgePhase.WAITING or self.request_code != request_code:
                return False
            self._value = value
            self._error = error
            self.phase = BridgePhase.DONE
            self._cond.notify_all()
            return True

    def wait(self, request_code: int, timeout: Optional[float] = None) -> Any:
        limit = timeout if timeout is not None and timeout > 0 else self.default_timeout
        deadline = time.monotonic() + limit
        with self._cond:
            while not (self.phase == BridgePhase.DONE and self.request_code == request_code):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self.phase = BridgePhase.IDLE
                    raise BridgeTimeout("timeout")
                self._cond.wait(remaining)
            self.phase = BridgePhase.IDLE
            if self._error is not None:
                raise BridgeError(self._error)
            return self._value

    def call(
        self,
        request_code: int,
        launch: Callable[[int], None],
        timeout: Optional[float] = None,
    ) -> Any:
        """Begin, run *launch* (the UI-thread action), then block for the outcome."""
        self.begin(request_code)
        try:
            launch(request_code)
        except Exception as e:
            self.complete(request_code, error=str(e) or e.__class__.__name__)
        return self.wait(request_code, timeout)


class SpeechEventQueue:
    """Bounded FIFO of recognition events with drop-oldest backpressure."""

    EVENT_TYPES = ("state", "amplitude", "partial", "final", "error")

    def __init__(
        self,
        capacity: int = 128,
        drain_max: int = 64,
        amplitude_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.drain_max = drain_max
        self.amplitude_interval = amplitude_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._events: deque[dict[str, Any]] = deque()
        self._last_amplitude: Optional[float] = None
        self.dropped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def push(self, session: int, type_: str, **fields: Any) -> dict[str, Any]:
        if type_ not in self.EVENT_TYPES:
            raise ValueError(f"Unknown event type: {type_}")
        event = {"type": type_, "session": session, **fields}
        with self._lock:
            while len(self._events) >= self.capacity:
                self._events.popleft()
                self.dropped += 1
            self._events.append(event)
        return event

    def push_amplitude(self, session: int, value: float) -> bool:
        """Queue an amplitude sample unless one was queued too recently."""
        now = self._clock()
        with self._lock:
            if self._last_amplitude is not None and now - self._last_amplitude < self.amplitude_interval:
                return False
            self._last_amplitude = now
        self.push(session, "amplitude", value=value)
        return True

    def drain(self, max_events: int = 0) -> list[dict[str, Any]]:
        limit = self.drain_max if max_events <= 0 or max_events > self.drain_max else max_events
        out: list[dict[str, Any]] = []
        with self._lock:
            while self._events and len(out) < limit:
                out.append(self._events.popleft())
        return out

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._last_amplitude = None


class SpeechSessions:
    """Single-active-session bookkeeping for the speech bridge."""

    def __init__(self, queue: Optional[SpeechEventQueue] = None):
        self.queue = queue or SpeechEventQueue()
        self._lock = threading.Lock()
        self._seq = 0
        self.active: int = 0

    def start(self) -> int:
        with self._lock:
            if self.active:
                raise BridgeBusy("busy")
            self._seq += 1
            self.active = self._seq
            session = self.active
        self.queue.reset()
        return session

    def is_active(self, session: int) -> bool:
        with self._lock:
            return session != 0 and self.active == session

    def finish(self, session: int) -> bool:
        with self._lock:
            if session == 0 or self.active != session:
                return False
            self.active = 0
            return True

    def stop(self, session: int) -> bool:
        return self.is_active(session)

    def cancel(self, session: int) -> bool:
        if not self.finish(session):
            return False
        self.queue.push(session, "state", state="cancelled")
        return True
