from __future__ import annotations

import os
import re
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytz

from .infrastructure.error_handling import InsightsCancelled


# -----------------------
# Env helpers
# -----------------------
def getenv_b(name: str, default: bool) -> bool:
    return (os.getenv(name, str(int(default))) or "").lower() in ("1", "true", "yes", "y")

def getenv_f(name: str, default: float) -> float:
    try: return float(os.getenv(name, str(default)))
    except (TypeError, ValueError): return default

def getenv_i(name: str, default: int) -> int:
    try: return int(os.getenv(name, str(default)))
    except (TypeError, ValueError): return default


# -----------------------
# Clock primitives
# -----------------------
class Clock:
    """Time source and the only place the insights code suspends.

    ``sleep`` honours an optional cancellation event: when the event is set
    before or during the wait, ``InsightsCancelled`` is raised.
    """

    def now_utc(self) -> datetime:
        raise NotImplementedError

    def sleep(self, seconds: float, cancel: Optional[threading.Event] = None) -> None:
        raise NotImplementedError

    def elapsed_since(self, start: datetime) -> float:
        return (self.now_utc() - start).total_seconds()


class RealClock(Clock):
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float, cancel: Optional[threading.Event] = None) -> None:
        seconds = max(0.0, seconds)
        if cancel is None:
            time.sleep(seconds)
            return
        if cancel.wait(seconds):
            raise InsightsCancelled("Cancelled while waiting")


class FixedClock(Clock):
    def __init__(self, dt_utc: datetime):
        if dt_utc.tzinfo is None:
            dt_utc = dt_utc.replace(tzinfo=timezone.utc)
        self._dt = dt_utc.astimezone(timezone.utc)

    @staticmethod
    def from_env(var: str = "NOW_UTC") -> Optional["FixedClock"]:
        val = os.getenv(var)
        if not val:
            return None
        return FixedClock(_parse_any_datetime(val))

    def now_utc(self) -> datetime:
        return self._dt

    def sleep(self, seconds: float, cancel: Optional[threading.Event] = None) -> None:
        if cancel is not None and cancel.is_set():
            raise InsightsCancelled("Cancelled while waiting")


class SimulatedClock(FixedClock):
    """Fixed clock that moves forward by exactly the time slept. Records every wait."""

    def __init__(self, dt_utc: Optional[datetime] = None):
        super().__init__(dt_utc or datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.sleeps: List[float] = []

    def advance(self, seconds: float) -> None:
        self._dt = self._dt + timedelta(seconds=seconds)

    def sleep(self, seconds: float, cancel: Optional[threading.Event] = None) -> None:
        super().sleep(seconds, cancel)
        self.sleeps.append(seconds)
        self.advance(seconds)


def _parse_any_datetime(s: str) -> datetime:
    s = s.strip()
    if re.fullmatch(r"\d{10}", s):
        return datetime.fromtimestamp(int(s), tz=timezone.utc)
    if re.fullmatch(r"\d{13}", s):
        return datetime.fromtimestamp(int(s) / 1000.0, tz=timezone.utc)
    s = s.replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as e:
        raise ValueError(f"Invalid datetime: {s!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def default_clock() -> Clock:
    return FixedClock.from_env() or RealClock()


# -----------------------
# Meta-style date ranges (account tz)
# -----------------------
def _require_tz(name: str) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as e:
        raise ValueError(f"Invalid IANA timezone: {name!r}") from e


def account_timezone() -> str:
    return os.getenv("ACCOUNT_TIMEZONE") or os.getenv("ACCOUNT_TZ") or "Europe/Amsterdam"


def meta_range_last_n_full_days(n: int, tz_name: Optional[str] = None, clock: Optional[Clock] = None) -> Dict[str, str]:
    """``{"since", "until"}`` covering the last ``n`` complete days in the account timezone."""
    if n <= 0:
        raise ValueError("n must be >= 1")
    tz = _require_tz(tz_name or account_timezone())
    today_acc = (clock or default_clock()).now_utc().astimezone(tz).date()
    until = (today_acc - timedelta(days=1)).isoformat()
    since = (today_acc - timedelta(days=n)).isoformat()
    return {"since": since, "until": until}


def meta_range_between(since: str, until: str) -> Dict[str, str]:
    for label, value in (("since", since), ("until", until)):
        if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value or ""):
            raise ValueError(f"{label} must be YYYY-MM-DD, got {value!r}")
    if since > until:
        raise ValueError(f"since ({since}) is after until ({until})")
    return {"since": since, "until": until}
