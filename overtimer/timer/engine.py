"""Timing engine for OverTimer.

States
------
IDLE      No run in progress.  Initial state, and where every stop lands.
RUNNING   Counting.  Ticks are produced on a self-rescheduling QTimer.
PAUSED    Frozen.  Remembers when the pause began.

Transitions
-----------
IDLE → RUNNING        (start)  fresh run: clock snapshot + flags reset
RUNNING → PAUSED      (pause)
PAUSED → RUNNING      (start)  resume: pause interval is accumulated
RUNNING | PAUSED → IDLE  (stop)  emits exactly one RunRecord

Anything else is a no-op, never an error: a double-clicked start button
must not throw.

Elapsed time
------------
All arithmetic uses the injected monotonic clock (``time.monotonic`` by
default)::

    elapsed = now - run_start - accumulated_pause

Stopping while PAUSED uses the instant the pause began as the end of
the run, so time spent paused before a stop never counts.

Tick loop
---------
The tick timer is single-shot.  ``_on_tick`` re-arms it only when the
state is still RUNNING at the end of the tick; that check is the only
cancellation mechanism.  ``pause()`` and ``stop()`` leave any pending
tick in place, and that tick returns without emitting anything.

Threshold events
----------------
``pre_alert`` fires once when ``0 < remaining <= pre_alert_seconds``.
The lower bound is strict: if a long gap between ticks carries
``remaining`` straight past zero, the pre-alert is skipped for that run
and is not fired late.  ``target_reached`` fires once when remaining
first reaches zero or below.

Threading
---------
Not thread-safe.  Control calls and ticks belong to the Qt thread that
owns the engine.  Slots connected to the engine's signals run
synchronously and must not call ``start``/``pause``/``stop`` from
inside the slot.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Callable

from PyQt6.QtCore import QObject, Qt, QTimer, pyqtSignal

from .display import format_display
from .record import RunRecord, TickEvent, TimerConfiguration, finalize_run

logger = logging.getLogger(__name__)


# ── enums ─────────────────────────────────────────────────────────────────


class EngineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


# ── constants ─────────────────────────────────────────────────────────────

DEFAULT_TICK_INTERVAL_MS = 16  # roughly one display refresh at 60 Hz


def _local_now() -> datetime:
    return datetime.now().astimezone()


# ── engine ────────────────────────────────────────────────────────────────


class TimingEngine(QObject):
    """Pause-aware countdown that keeps counting into overrun.

    Signals
    -------
    tick(event: TickEvent)
        Emitted on every tick while RUNNING.
    run_ended(record: RunRecord)
        Emitted once per run, from inside ``stop()``.
    pre_alert()
        Emitted at most once per run, inside the pre-alert window.
    target_reached()
        Emitted at most once per run, when remaining first hits zero.
    state_changed(new_state: EngineState)
        Emitted on every state transition.
    """

    tick = pyqtSignal(object)
    run_ended = pyqtSignal(object)
    pre_alert = pyqtSignal()
    target_reached = pyqtSignal()
    state_changed = pyqtSignal(object)

    def __init__(
        self,
        tick_sink: Callable[[TickEvent], None] | None = None,
        end_sink: Callable[[RunRecord], None] | None = None,
        parent: QObject | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _local_now,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
    ) -> None:
        super().__init__(parent)

        self._clock = clock
        self._wall_clock = wall_clock

        # ── configuration ─────────────────────────────────────────────
        self._pending_config = TimerConfiguration()
        self._run_config = self._pending_config

        # ── run state ─────────────────────────────────────────────────
        self._state: EngineState = EngineState.IDLE
        self._run_start: float | None = None
        self._pause_start: float | None = None
        self._accumulated_pause: float = 0.0
        self._run_start_wall: datetime | None = None

        # ── threshold flags ───────────────────────────────────────────
        self._pre_alert_fired: bool = False
        self._target_reached_fired: bool = False

        # ── Qt timer ──────────────────────────────────────────────────
        self._tick_timer = QTimer(self)
        self._tick_timer.setSingleShot(True)
        self._tick_timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._tick_timer.setInterval(tick_interval_ms)
        self._tick_timer.timeout.connect(self._on_tick)

        if tick_sink is not None:
            self.tick.connect(tick_sink)
        if end_sink is not None:
            self.run_ended.connect(end_sink)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == EngineState.RUNNING

    @property
    def configuration(self) -> TimerConfiguration:
        """The configuration of the live run, or the next one when IDLE."""
        if self._state == EngineState.IDLE:
            return self._pending_config
        return self._run_config

    @property
    def tick_interval_ms(self) -> int:
        return self._tick_timer.interval()

    @property
    def elapsed_seconds(self) -> float:
        """Seconds counted so far in this run (0.0 when IDLE)."""
        if self._state == EngineState.IDLE:
            return 0.0
        return self._elapsed_at(self._now_or_pause_start())

    def set_target(
        self, target_seconds: float, pre_alert_seconds: float = 0.0
    ) -> None:
        """Configure the next run.

        Call only while IDLE.  The value is not checked; a run already
        in progress keeps the configuration it started with.
        """
        self._pending_config = TimerConfiguration(
            target_seconds=target_seconds,
            pre_alert_seconds=pre_alert_seconds,
        )

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Begin a fresh run from IDLE, or resume from PAUSED."""
        if self._state == EngineState.RUNNING:
            return

        now = self._clock()
        if self._state == EngineState.IDLE:
            self._begin_run(now)
        else:
            self._accumulated_pause += now - self._pause_start
            self._pause_start = None
            logger.debug(
                "Resumed run (paused total %.3fs)", self._accumulated_pause
            )

        self._set_state(EngineState.RUNNING)
        self._on_tick()

    def pause(self) -> None:
        """Freeze the run.  No-op unless RUNNING."""
        if self._state != EngineState.RUNNING:
            return
        self._pause_start = self._clock()
        logger.debug("Paused at elapsed %.3fs", self.elapsed_seconds)
        self._set_state(EngineState.PAUSED)

    def stop(self, manual_end: bool = True, notes: str = "") -> RunRecord | None:
        """End the run and return its record.  Returns ``None`` when IDLE."""
        if self._state == EngineState.IDLE:
            return None

        end = self._now_or_pause_start()
        record = finalize_run(
            self._run_config,
            self._run_start,
            end,
            self._accumulated_pause,
            self._run_start_wall,
            self._wall_clock(),
            manual_end=manual_end,
            notes=notes,
        )
        self._clear_run()
        logger.debug(
            "Stopped %s: duration %.3fs, overrun %.3fs",
            record.run_id, record.duration_seconds, record.overrun_seconds,
        )

        self._set_state(EngineState.IDLE)
        self.run_ended.emit(record)
        return record

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL — timer mechanics
    # ══════════════════════════════════════════════════════════════════

    def _begin_run(self, now: float) -> None:
        self._run_config = self._pending_config
        self._run_start = now
        self._run_start_wall = self._wall_clock()
        self._pause_start = None
        self._accumulated_pause = 0.0
        self._pre_alert_fired = False
        self._target_reached_fired = False
        logger.debug(
            "Started run: target %.3fs, pre-alert %.3fs",
            self._run_config.target_seconds,
            self._run_config.pre_alert_seconds,
        )

    def _clear_run(self) -> None:
        self._run_start = None
        self._pause_start = None
        self._accumulated_pause = 0.0
        self._run_start_wall = None

    def _now_or_pause_start(self) -> float:
        if self._state == EngineState.PAUSED:
            return self._pause_start
        return self._clock()

    def _elapsed_at(self, instant: float) -> float:
        return instant - self._run_start - self._accumulated_pause

    def _on_tick(self) -> None:
        if self._state != EngineState.RUNNING:
            return

        elapsed = self._elapsed_at(self._clock())
        config = self._run_config
        remaining = config.target_seconds - elapsed
        is_overrun = remaining <= 0

        if (
            not self._pre_alert_fired
            and config.pre_alert_seconds > 0
            and 0 < remaining <= config.pre_alert_seconds
        ):
            self._pre_alert_fired = True
            self.pre_alert.emit()

        if not self._target_reached_fired and is_overrun:
            self._target_reached_fired = True
            self.target_reached.emit()

        self.tick.emit(TickEvent(
            elapsed_seconds=elapsed,
            remaining_seconds=remaining,
            is_overrun=is_overrun,
            display=format_display(abs(remaining), is_overrun),
        ))

        # Sole cancellation point: only a still-running engine re-arms.
        if self._state == EngineState.RUNNING:
            self._tick_timer.start()

    def _set_state(self, new_state: EngineState) -> None:
        self._state = new_state
        self.state_changed.emit(new_state)
