"""
Normalization helpers shared by the source fetchers.

All emitted dates go through `to_iso()` so every HazardEvent.date has the
same shape: `2023-11-14T22:13:20.000Z`.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a `Z` suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utc_now())


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string; None when unparseable."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        d = date.fromisoformat(text)
    except ValueError:
        return None
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def iso_or_now(value: Any) -> str:
    """Normalize an upstream date string, substituting now when it is bad."""
    dt = parse_datetime(value)
    return to_iso(dt) if dt is not None else now_iso()


def epoch_ms_to_iso(value: Any) -> Optional[str]:
    """Epoch milliseconds → ISO string; None for missing or out-of-range."""
    ms = finite_float(value)
    if ms is None:
        return None
    try:
        return to_iso(datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc))
    except (OverflowError, OSError, ValueError):
        return None


def finite_float(value: Any) -> Optional[float]:
    """Coerce to float; None for missing, non-numeric, NaN or infinite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def valid_coordinates(lat: Any, lng: Any) -> Optional[tuple]:
    """(lat, lng) as finite floats, or None when either is unusable."""
    flat = finite_float(lat)
    flng = finite_float(lng)
    if flat is None or flng is None:
        return None
    return flat, flng


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def format_number(value: float) -> str:
    """Render 6.0 as '6' and 6.25 as '6.25', the way the feeds print them."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def text_or(value: Any, default: str) -> str:
    """Non-empty upstream string, else `default`."""
    if isinstance(value, str) and value.strip():
        return value
    return default
