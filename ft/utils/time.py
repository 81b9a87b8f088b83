from datetime import datetime, timezone, timedelta
from typing import Any, Optional

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a 'Z' suffix (2026-10-18T12:00:00.000Z)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Best-effort parse of a stored timestamp into an aware UTC datetime.

    Accepts:
    - datetime (naive is taken as UTC)
    - ISO-8601 strings, with or without 'Z'
    - epoch numbers (seconds, or milliseconds when > 1e11)
    - {"seconds": ..., "nanoseconds": ...} server timestamp maps
    Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        secs = float(value)
        if secs > 1e11:
            secs = secs / 1000.0
        try:
            return datetime.fromtimestamp(secs, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, dict):
        secs = value.get("seconds", value.get("_seconds"))
        if secs is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        try:
            return datetime.fromtimestamp(int(secs), tz=timezone.utc) + timedelta(microseconds=int(nanos) // 1000)
        except (TypeError, ValueError, OverflowError, OSError):
            return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith("Z") or s.endswith("z"):
            s = s[:-1] + "+00:00"
        # fromisoformat only takes up to 6 fractional digits before 3.11
        if "." in s:
            head, _, tail = s.partition(".")
            frac = ""
            rest = ""
            for i, ch in enumerate(tail):
                if not ch.isdigit():
                    rest = tail[i:]
                    break
                frac += ch
            s = f"{head}.{frac[:6].ljust(6, '0')}{rest}" if frac else head + rest
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return None

def minutes_since(value: Any, now: Optional[datetime] = None) -> Optional[int]:
    ts = parse_timestamp(value)
    if ts is None:
        return None
    now = now or now_utc()
    return max(0, int(round((now - ts).total_seconds() / 60.0)))
