from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from threading import Event, Thread
from typing import Callable

from croniter import croniter

logger = logging.getLogger(__name__)

_EVERY_PREFIX = "@every "
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class InvalidSchedule(ValueError):
    pass


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as "5m", "1h30m" or "1.5s"."""
    text = text.strip()
    pos = 0
    total = 0.0
    while pos < len(text):
        m = _DURATION_PART_RE.match(text, pos)
        if not m:
            raise InvalidSchedule(f"invalid duration: {text!r}")
        total += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
        pos = m.end()
    if total <= 0:
        raise InvalidSchedule(f"duration must be positive: {text!r}")
    return timedelta(seconds=total)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class CronScheduler:
    """Runs a job on a cron cadence in a background thread.

    Accepts croniter expressions ("*/5 * * * *", "@hourly", ...) and the
    "@every <duration>" form.
    """

    def __init__(self, expression: str, job: Callable[[], object], now: Callable[[], datetime] = _local_now):
        self.expression = expression.strip()
        self.job = job
        self._now = now
        self._interval: timedelta | None = None

        if self.expression.startswith(_EVERY_PREFIX):
            self._interval = parse_duration(self.expression[len(_EVERY_PREFIX):])
        elif not croniter.is_valid(self.expression):
            raise InvalidSchedule(f"invalid cron expression: {self.expression!r}")

        self._stop = Event()
        self._thr: Thread | None = None
        self._last_fire: datetime | None = None

    def next_fire_time(self, after: datetime) -> datetime:
        if self._interval is not None:
            return after + self._interval
        return croniter(self.expression, after).get_next(datetime)

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name="cron-scheduler", daemon=True)
        self._thr.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thr is not None:
            self._thr.join(timeout)

    @property
    def running(self) -> bool:
        return bool(self._thr and self._thr.is_alive())

    def _loop(self) -> None:
        logger.info("Scheduler started: %s", self.expression)
        while not self._stop.is_set():
            now = self._now()
            # Never schedule before the previous fire time, the wait may return early.
            base = max(now, self._last_fire) if self._last_fire else now
            fire_at = self.next_fire_time(base)
            delay = (fire_at - now).total_seconds()
            if self._stop.wait(max(0.0, delay)):
                break
            self._last_fire = fire_at
            try:
                self.job()
            except Exception:
                logger.exception("Scheduled run failed")
        logger.info("Scheduler stopped")
