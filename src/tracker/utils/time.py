from __future__ import annotations

import time
from datetime import datetime, timezone, timedelta
from typing import Union

Instant = Union[float, int, datetime]
Duration = Union[float, int, timedelta]

# --- epoch / datetime conversions ---

def utc_now_s() -> float:
    """Unix epoch seconds (float)."""
    return time.time()

def epoch_s(dt: datetime) -> float:
    """Convert aware datetime -> epoch seconds."""
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.timestamp()

def utc_dt(ts: float | int) -> datetime:
    """Epoch seconds -> timezone-aware UTC datetime."""
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)

# --- loose argument coercion (seconds or datetime/timedelta) ---

def to_epoch(when: Instant) -> float:
    """Accept epoch seconds or an aware datetime; return epoch seconds."""
    if isinstance(when, datetime):
        return epoch_s(when)
    return float(when)

def to_seconds(d: Duration) -> float:
    """Accept seconds or a timedelta; return seconds (float)."""
    if isinstance(d, timedelta):
        return d.total_seconds()
    return float(d)

def oldest_allowed(ttl_s: float, now: float | None = None) -> float:
    """Lower bound of the validity window: now - ttl."""
    if now is None:
        now = utc_now_s()
    return now - ttl_s
