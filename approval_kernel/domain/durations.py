"""
Duration helpers (``approval_kernel.domain.durations``).

Pure functions over datetimes used by step/request snapshots and by the
statistics engine.  No clock access: "now" is always passed in.
"""

from __future__ import annotations

from datetime import datetime, timedelta

_UNITS: tuple[tuple[str, int], ...] = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def humanize_duration(delta: timedelta) -> str:
    """Render a duration with its largest whole unit, e.g. ``"3 hours"``.

    Negative durations are rendered by magnitude.  Anything under one
    second renders as ``"0 seconds"``.
    """
    seconds = abs(int(delta.total_seconds()))
    for unit, size in _UNITS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'' if count == 1 else 's'}"
    return "0 seconds"


def hours_between(start: datetime | None, end: datetime | None) -> float | None:
    """Hours from ``start`` to ``end``, or None if either is missing."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600
