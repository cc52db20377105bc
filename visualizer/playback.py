"""Playback controller — Idle / Ready / Playing over an immutable trace.

The controller never reads the clock itself: a ``Scheduler`` delivers
ticks. ``AsyncioScheduler`` runs them on the event loop, so ticks and user
actions are serialized without locks.
"""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .trace_types import EMPTY_TRACE, ExecutionStep, ExecutionTrace, clamp_index
from . import constants

logger = logging.getLogger(__name__)


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    READY = "ready"
    PLAYING = "playing"


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot handed to listeners after every change."""

    status: PlaybackStatus = PlaybackStatus.IDLE
    current_step_index: int = 0
    speed_multiplier: float = constants.DEFAULT_SPEED_MULTIPLIER
    step_count: int = 0

    @property
    def is_playing(self) -> bool:
        return self.status == PlaybackStatus.PLAYING


class TimerHandle(ABC):
    """A live repeating timer; ``cancel`` is idempotent."""

    @abstractmethod
    def cancel(self) -> None: ...

    @property
    @abstractmethod
    def active(self) -> bool: ...


class Scheduler(ABC):
    """Source of repeating ticks."""

    @abstractmethod
    def schedule_repeating(
        self, interval: float, callback: Callable[[], None]
    ) -> TimerHandle: ...


class _AsyncioTimer(TimerHandle):
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], None],
    ):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = loop.call_later(
            interval, self._fire
        )

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm before running so a callback that cancels also kills the next tick.
        self._handle = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def active(self) -> bool:
        return not self._cancelled


class AsyncioScheduler(Scheduler):
    """Schedules ticks with ``loop.call_later`` on a single event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def schedule_repeating(
        self, interval: float, callback: Callable[[], None]
    ) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioTimer(loop, interval, callback)


Listener = Callable[[PlaybackState], None]


class PlaybackController:
    """Step, play, pause, rewind and speed control over one trace."""

    def __init__(
        self,
        scheduler: Scheduler,
        base_interval: float = constants.BASE_INTERVAL_SECONDS,
    ):
        self._scheduler = scheduler
        self._base_interval = base_interval
        self._trace: ExecutionTrace = EMPTY_TRACE
        self._status = PlaybackStatus.IDLE
        self._index = 0
        self._speed = constants.DEFAULT_SPEED_MULTIPLIER
        self._timer: Optional[TimerHandle] = None
        self._listeners: list[Listener] = []

    # ── Queries ──────────────────────────────────────────────────

    @property
    def trace(self) -> ExecutionTrace:
        return self._trace

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            status=self._status,
            current_step_index=self._index,
            speed_multiplier=self._speed,
            step_count=len(self._trace),
        )

    @property
    def current_step(self) -> ExecutionStep | None:
        if self._trace.is_empty:
            return None
        return self._trace[self._index]

    @property
    def interval(self) -> float:
        return self._base_interval / self._speed

    @property
    def controls_enabled(self) -> bool:
        return self._status != PlaybackStatus.IDLE and not self._trace.is_empty

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Transport ────────────────────────────────────────────────

    def load_trace(self, trace: ExecutionTrace) -> None:
        self._cancel_timer()
        self._trace = trace
        self._index = 0
        self._status = PlaybackStatus.READY
        logger.info(
            "Loaded trace: %d steps (origin=%s, pattern=%s)",
            len(trace),
            trace.origin.value,
            trace.pattern or "-",
        )
        self._notify()

    def step_forward(self) -> None:
        self._move_to(self._index + 1)

    def step_backward(self) -> None:
        self._move_to(self._index - 1)

    def jump_to_start(self) -> None:
        self._move_to(0)

    def jump_to_end(self) -> None:
        self._move_to(self._trace.last_index)

    def play(self) -> None:
        if not self.controls_enabled:
            return
        self._cancel_timer()
        self._timer = self._scheduler.schedule_repeating(self.interval, self._tick)
        if self._status != PlaybackStatus.PLAYING:
            self._status = PlaybackStatus.PLAYING
            logger.debug("Playback started at %.3fs per step", self.interval)
            self._notify()

    def pause(self) -> None:
        if self._status != PlaybackStatus.PLAYING:
            return
        self._cancel_timer()
        self._status = PlaybackStatus.READY
        self._notify()

    def toggle_playback(self) -> None:
        if self._status == PlaybackStatus.PLAYING:
            self.pause()
        else:
            self.play()

    def set_speed(self, multiplier: float) -> None:
        """Change the playback speed; raises ``ValueError`` unless positive."""
        if not isinstance(multiplier, (int, float)) or not math.isfinite(multiplier):
            raise ValueError(f"Speed multiplier must be a finite number: {multiplier!r}")
        if multiplier <= 0:
            raise ValueError(f"Speed multiplier must be positive: {multiplier!r}")
        self._speed = float(multiplier)
        if self._status == PlaybackStatus.PLAYING:
            self._cancel_timer()
            self._timer = self._scheduler.schedule_repeating(self.interval, self._tick)
        self._notify()

    def close(self) -> None:
        """Tear down the timer; the controller stays usable."""
        self.pause()
        self._cancel_timer()

    # ── Internals ────────────────────────────────────────────────

    def _tick(self) -> None:
        if self._status != PlaybackStatus.PLAYING:
            return
        if self._index < self._trace.last_index:
            self._index += 1
            self._notify()
            return
        logger.debug("Reached final step %d, stopping playback", self._index)
        self._cancel_timer()
        self._status = PlaybackStatus.READY
        self._notify()

    def _move_to(self, index: int) -> None:
        if not self.controls_enabled:
            return
        target = clamp_index(self._trace, index)
        if target == self._index:
            return
        self._index = target
        self._notify()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)
