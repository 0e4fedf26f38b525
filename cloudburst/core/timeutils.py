"""
Time and identifier helpers shared by the store boundary and the services.

Sensor firmware writes ``lastUpdate``/``timestamp`` as a string of epoch
seconds while the service writes numeric epoch milliseconds. Everything above
the repositories works with epoch-millisecond integers only; use
``normalize_timestamp`` when reading a raw document.
"""
import secrets
import string
import time
from datetime import datetime
from typing import Any, Optional

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

_ID_ALPHABET = string.ascii_lowercase + string.digits


def current_millis() -> int:
    """Current wall-clock time as epoch milliseconds"""
    return int(time.time() * 1000)


def normalize_timestamp(value: Any) -> Optional[int]:
    """
    Convert a stored timestamp to epoch milliseconds.

    - ``str`` is epoch seconds (``"1700000000"`` -> ``1700000000000``)
    - ``int``/``float`` is epoch milliseconds
    - ``datetime`` is converted directly

    Empty, zero, boolean or unparseable values return None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            millis = int(float(value) * 1000)
        except ValueError:
            return None
        return millis or None

    if isinstance(value, (int, float)):
        return int(value) or None

    return None


def generate_id(prefix: str = "id") -> str:
    """
    Generate an identifier of the form ``{prefix}_{epochMs}_{9 chars}``.

    Keys sort by creation time as long as the millisecond part keeps its width.
    """
    suffix = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{current_millis()}_{suffix}"


def format_relative_time(timestamp_ms: Optional[int], now_ms: Optional[int] = None) -> str:
    """Human readable age of a timestamp, e.g. ``"3 minutes ago"``"""
    if not timestamp_ms:
        return "Never"

    now_ms = now_ms if now_ms is not None else current_millis()
    seconds = (now_ms - timestamp_ms) // 1000

    if seconds < 60:
        return "just now"

    for unit, size in (
        ("year", 31536000),
        ("month", 2592000),
        ("week", 604800),
        ("day", 86400),
        ("hour", 3600),
        ("minute", 60),
    ):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit if count == 1 else unit + 's'} ago"

    return "just now"


def to_iso(timestamp_ms: int) -> str:
    """Epoch milliseconds to a local ISO-8601 string (seconds precision)"""
    return datetime.fromtimestamp(timestamp_ms / 1000).isoformat(timespec="seconds")
