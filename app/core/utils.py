import math
import secrets
import string
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

_BASE36 = string.digits + string.ascii_uppercase


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    Columns are declared without timezone, so both Postgres and SQLite hand
    back naive values; comparisons must use the same representation.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def round_currency(amount: float) -> float:
    """Round to the nearest whole currency unit, halves away from zero."""
    return float(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def floor_div(amount: float, unit: int) -> int:
    return int(math.floor(amount / unit))


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def reference_number(prefix: str, random_len: int) -> str:
    """
    Human-readable reference such as ``CHK-LXK3F2A1-9QZT``.

    Millisecond timestamp in base36 followed by a random base36 suffix.
    """
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(random_len))
    return f"{prefix}-{stamp}-{suffix}"
