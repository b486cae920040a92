"""Clock-face formatting for the timer display and run listings."""

from __future__ import annotations

import math


def format_display(seconds_abs: float, is_overrun: bool) -> str:
    """Render the live timer face as ``[-]HH:MM:SS.ss``.

    *seconds_abs* is the remaining time with its sign already stripped.
    The hours field is dropped when zero; minutes, hours and the integer
    part of seconds are always two digits wide.  A leading ``-`` marks
    overrun.

    Rounding happens once, on whole centiseconds, so ``59.999`` becomes
    ``01:00.00`` rather than ``00:60.00``.
    """
    centis = round(abs(seconds_abs) * 100)
    hours, centis = divmod(centis, 360_000)
    minutes, centis = divmod(centis, 6_000)
    secs, frac = divmod(centis, 100)

    sign = "-" if is_overrun else ""
    body = f"{minutes:02d}:{secs:02d}.{frac:02d}"
    if hours > 0:
        body = f"{hours:02d}:{body}"
    return sign + body


def format_clock(seconds: float | None) -> str:
    """Whole-second ``MM:SS`` (or ``HH:MM:SS``) used for preset targets."""
    if not seconds or seconds < 0:
        seconds = 0
    total = round(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_hms(seconds: float | None) -> str:
    """Always-``HH:MM:SS`` rendering for totals; fractions are floored."""
    if not seconds or seconds <= 0:
        return "00:00:00"
    total = math.floor(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
