import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def to_float(x: Any, default: float = 0.0) -> float:
    """float(x), or default when x is missing, unparseable, NaN or infinite."""
    if x is None:
        return default
    try:
        value = float(x)
    except Exception:
        return default
    return value if math.isfinite(value) else default


def parse_leading_float(text: Any) -> Optional[float]:
    """
    Parse the numeric prefix of a cell the way a spreadsheet user expects:
    "20.5" -> 20.5, "12 (approx)" -> 12.0, "abc" -> None.
    """
    if text is None:
        return None
    m = _LEADING_NUMBER.match(str(text))
    if not m:
        return None
    try:
        value = float(m.group(1))
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def round_half_up(x: float) -> int:
    # Python's round() is banker's rounding; the dashboard rounds .5 up
    return int(math.floor(x + 0.5))


def pct(x: float) -> int:
    return round_half_up(x * 100)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Best-effort ISO / epoch-millis parse; falls back to now."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return utcnow()
    if isinstance(value, str) and value.strip():
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return utcnow()
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return utcnow()
