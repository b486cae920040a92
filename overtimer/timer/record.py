"""Value types that flow out of the timing engine, and run finalization.

``finalize_run`` is the only place a :class:`RunRecord` is built.  It is
a pure function of the engine's clock snapshot at stop time::

    duration_seconds        = end - run_start - accumulated_pause
    overrun_seconds         = duration_seconds - target_seconds
    final_remaining_seconds = target_seconds - duration_seconds

All three inputs are monotonic-clock readings in seconds.  Wall-clock
timestamps ride along for display only and never feed the arithmetic.
Nothing is clamped: a clock that runs backwards produces a negative
duration, which keeps the contract violation visible.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TimerConfiguration:
    """Target and pre-alert lead time for one run (seconds)."""

    target_seconds: float = 0.0
    pre_alert_seconds: float = 0.0  # 0 disables the pre-alert


@dataclass(frozen=True)
class TickEvent:
    elapsed_seconds: float
    remaining_seconds: float
    is_overrun: bool
    display: str


@dataclass(frozen=True)
class RunRecord:
    """Immutable summary of one completed run."""

    run_id: str
    start_timestamp: datetime
    end_timestamp: datetime
    duration_seconds: float
    target_seconds: float
    overrun_seconds: float
    final_remaining_seconds: float
    manual_end: bool
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form with ISO-8601 timestamps."""
        data = asdict(self)
        data["start_timestamp"] = self.start_timestamp.isoformat()
        data["end_timestamp"] = self.end_timestamp.isoformat()
        return data


def new_run_id() -> str:
    return f"run-{uuid.uuid4().hex}"


def finalize_run(
    configuration: TimerConfiguration,
    run_start_monotonic: float,
    end_monotonic: float,
    accumulated_pause: float,
    start_timestamp: datetime,
    end_timestamp: datetime,
    *,
    manual_end: bool = True,
    notes: str = "",
    run_id: str | None = None,
) -> RunRecord:
    """Reconcile a finished run into a :class:`RunRecord`."""
    duration = end_monotonic - run_start_monotonic - accumulated_pause
    target = configuration.target_seconds
    return RunRecord(
        run_id=run_id or new_run_id(),
        start_timestamp=start_timestamp,
        end_timestamp=end_timestamp,
        duration_seconds=duration,
        target_seconds=target,
        overrun_seconds=duration - target,
        final_remaining_seconds=target - duration,
        manual_end=manual_end,
        notes=notes,
    )
