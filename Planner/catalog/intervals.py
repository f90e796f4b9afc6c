from __future__ import annotations

import re
from typing import Any, Optional

# PostgreSQL renders sub-day intervals as a bare clock, e.g. "01:00:00"
_CLOCK = re.compile(r"^(\d+):(\d{2}):(\d{2})$")


def _plural(amount: int, unit: str) -> str:
    return f"{amount} {unit}" if amount == 1 else f"{amount} {unit}s"


def normalize_interval(pg_interval: Optional[str]) -> Optional[str]:
    """
    Rewrite PostgreSQL interval output into the form a model would declare.

    "1 mon" becomes "1 month", "01:00:00" becomes "1 hour" and "00:30:00" becomes "30 minutes".
    Anything already in unit form ("7 days") passes through trimmed.
    """
    if pg_interval is None or not pg_interval.strip():
        return pg_interval

    normalized = re.sub(r"\bmons?\b", lambda m: "months" if m.group(0) == "mons" else "month", pg_interval.strip())

    m = _CLOCK.match(normalized)
    if not m:
        return normalized

    hours, minutes, seconds = (int(g) for g in m.groups())
    total = hours * 3600 + minutes * 60 + seconds
    if total == 0:
        return normalized
    if total % 86400 == 0:
        return _plural(total // 86400, "day")
    if total % 3600 == 0:
        return _plural(total // 3600, "hour")
    if total % 60 == 0:
        return _plural(total // 60, "minute")
    return _plural(total, "second")


# Policy offsets are intervals for timestamp hypertables and plain integers for integer ones
def parse_interval_or_integer(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return normalize_interval(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return None
