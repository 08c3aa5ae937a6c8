from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime


def rfc3339_now() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def _trim(value: float, digits: int) -> str:
    return f"{value:.{digits}f}".rstrip("0").rstrip(".")


def format_duration(seconds: float) -> str:
    """Render a duration the way Go's time.Duration prints it, e.g. 1h2m3.5s."""
    # Whole nanoseconds first, so rounding never carries past a unit boundary.
    ns = int(round(seconds * 1e9))
    if ns <= 0:
        return "0s"
    if ns < 1_000:
        return f"{ns}ns"
    if ns < 1_000_000:
        return f"{_trim(ns / 1e3, 3)}µs"
    if ns < 1_000_000_000:
        return f"{_trim(ns / 1e6, 6)}ms"

    hours, rem = divmod(ns, 3_600_000_000_000)
    minutes, rem = divmod(rem, 60_000_000_000)
    secs, frac = divmod(rem, 1_000_000_000)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    out += str(secs)
    if frac:
        out += "." + f"{frac:09d}".rstrip("0")
    return out + "s"


@dataclass(frozen=True)
class ProcessContext:
    """Immutable facts captured once at process start."""

    started_at: datetime = field(default_factory=lambda: datetime.now().astimezone())
    started_monotonic: float = field(default_factory=time.monotonic)

    def uptime_s(self) -> float:
        return max(0.0, time.monotonic() - self.started_monotonic)

    def uptime(self) -> str:
        return format_duration(self.uptime_s())
