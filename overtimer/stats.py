"""Aggregates over stored runs for the summary view."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .database.models import TimerRun
from .storage import as_utc
from .timer.display import format_hms


@dataclass(frozen=True)
class RunSummary:
    run_count: int = 0
    total_seconds: float = 0.0
    total_overrun_seconds: float = 0.0  # runs that finished early add nothing

    @property
    def total_display(self) -> str:
        return format_hms(self.total_seconds)

    @property
    def overrun_display(self) -> str:
        return format_hms(self.total_overrun_seconds)


@dataclass(frozen=True)
class DailyTotal:
    target_minutes: float = 0.0
    actual_minutes: float = 0.0


def summarize_runs(runs: Iterable[TimerRun]) -> RunSummary:
    count = 0
    total = 0.0
    over = 0.0
    for run in runs:
        count += 1
        total += run.duration_seconds or 0.0
        if run.overrun_seconds and run.overrun_seconds > 0:
            over += run.overrun_seconds
    return RunSummary(run_count=count, total_seconds=total, total_overrun_seconds=over)


def daily_totals(runs: Iterable[TimerRun]) -> dict[date, DailyTotal]:
    """Target vs. measured minutes per local calendar day, oldest first."""
    target: dict[date, float] = defaultdict(float)
    actual: dict[date, float] = defaultdict(float)
    for run in runs:
        if run.start_timestamp is None:
            continue
        day = as_utc(run.start_timestamp).astimezone().date()
        target[day] += (run.target_seconds or 0.0) / 60
        actual[day] += (run.duration_seconds or 0.0) / 60
    return {
        day: DailyTotal(target_minutes=target[day], actual_minutes=actual[day])
        for day in sorted(target)
    }
