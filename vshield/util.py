"""
Utility functions for VShield.

Provides time helpers, TTL parsing and address normalization.
"""

import ipaddress
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional


Clock = Callable[[], int]

# Longest accepted TTL (100 years); keeps every expiry renderable as a date
MAX_TTL_MS = 100 * 365 * 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Get current Unix time in whole milliseconds."""
    return int(time.time() * 1000)


def iso_from_ms(ts_ms: int) -> str:
    """
    Render a millisecond timestamp as ISO-8601 UTC.

    Millisecond precision with a trailing 'Z', e.g. 2023-11-14T22:13:20.000Z.
    """
    dt = datetime.fromtimestamp(ts_ms // 1000, tz=timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{ts_ms % 1000:03d}Z"


def is_positive_integer(value: Any) -> bool:
    """True for ints (not bools) greater than zero."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def parse_ttl_ms(raw: Any, default_ms: int) -> int:
    """
    Parse a TTL in milliseconds.

    Accepts positive integers and strings holding one ("600000", " 600000 ",
    "6e5" and "600000.0" are integral numbers too). Anything else, including
    zero, negatives, fractions, values above MAX_TTL_MS, booleans and None,
    yields default_ms.
    """
    if raw is None or isinstance(raw, bool):
        return default_ms
    if isinstance(raw, int):
        return raw if 0 < raw <= MAX_TTL_MS else default_ms
    if isinstance(raw, float):
        if raw != raw or raw in (float("inf"), float("-inf")) or not raw.is_integer():
            return default_ms
        return parse_ttl_ms(int(raw), default_ms)
    if isinstance(raw, (str, bytes)):
        text = raw.decode("ascii", "replace") if isinstance(raw, bytes) else raw
        text = text.strip()
        # int() and float() accept digit separators; a TTL never has them
        if not text or "_" in text:
            return default_ms
        try:
            return parse_ttl_ms(int(text), default_ms)
        except ValueError:
            pass
        try:
            return parse_ttl_ms(float(text), default_ms)
        except ValueError:
            return default_ms
    return default_ms


def parse_instant_ms(raw: Any) -> Optional[int]:
    """
    Interpret a stored value as a millisecond instant.

    Returns None when the value is not numeric (a corrupted entry).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw != raw or raw in (float("inf"), float("-inf")):
            return None
        return int(raw)
    if isinstance(raw, (str, bytes)):
        text = raw.decode("ascii", "replace") if isinstance(raw, bytes) else raw
        text = text.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return parse_instant_ms(float(text))
        except ValueError:
            return None
    return None


def normalize_address(raw: Optional[str]) -> str:
    """
    Normalize a source address into a whitelist key.

    IP literals are rendered in canonical compressed form and IPv4-mapped
    IPv6 addresses collapse to plain IPv4. Other strings are only stripped.
    Returns '' for a missing address.
    """
    if raw is None:
        return ""
    text = str(raw).strip()
    if not text:
        return ""
    try:
        addr = ipaddress.ip_address(text)
    except ValueError:
        return text
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return str(addr.ipv4_mapped)
    return str(addr)
