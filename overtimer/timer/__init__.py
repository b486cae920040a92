"""Timer package."""

from .display import format_clock, format_display, format_hms
from .engine import DEFAULT_TICK_INTERVAL_MS, EngineState, TimingEngine
from .record import RunRecord, TickEvent, TimerConfiguration, finalize_run

__all__ = [
    "TimingEngine",
    "EngineState",
    "DEFAULT_TICK_INTERVAL_MS",
    "TimerConfiguration",
    "TickEvent",
    "RunRecord",
    "finalize_run",
    "format_display",
    "format_clock",
    "format_hms",
]
