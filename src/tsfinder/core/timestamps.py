# src/tsfinder/core/timestamps.py
"""Nanosecond timestamp arithmetic and RFC 3339 conversion.

Timestamps are plain ``int`` nanoseconds since the Unix epoch (UTC). Python's
``datetime`` stops at microseconds, and Spanner commit timestamps routinely
carry nanoseconds, so the search never holds a ``datetime`` internally. The
Spanner client boundary converts to and from ``DatetimeWithNanoseconds``.

Arithmetic saturates at the database's timestamp range instead of overflowing,
so a midpoint over a window spanning centuries is still a valid timestamp.
"""

import re
from datetime import UTC, datetime, timedelta

from google.api_core.datetime_helpers import DatetimeWithNanoseconds

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MILLISECOND = 1_000_000

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Spanner TIMESTAMP range: 0001-01-01T00:00:00Z .. 9999-12-31T23:59:59.999999999Z
MIN_TIMESTAMP_NS = -62_135_596_800 * NANOS_PER_SECOND
MAX_TIMESTAMP_NS = 253_402_300_799 * NANOS_PER_SECOND + 999_999_999

_RFC3339 = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)


class TimestampParseError(ValueError):
    """Raised when a string is not an RFC 3339 timestamp."""


def saturating_add(timestamp_ns: int, delta_ns: int) -> int:
    """Add a duration, clamping the result to the valid timestamp range."""
    return max(MIN_TIMESTAMP_NS, min(MAX_TIMESTAMP_NS, timestamp_ns + delta_ns))


def midpoint(start_ns: int, end_ns: int) -> int:
    """Midpoint of two timestamps, rounded towards ``start_ns``."""
    return saturating_add(start_ns, (end_ns - start_ns) // 2)


def millis_to_nanos(millis: int) -> int:
    return millis * NANOS_PER_MILLISECOND


def from_datetime(value: datetime) -> int:
    """Convert a datetime to epoch nanoseconds.

    ``DatetimeWithNanoseconds`` keeps its full precision. Naive datetimes are
    taken to be UTC, which is what the Spanner client returns.
    """
    # Read nanoseconds first: DatetimeWithNanoseconds.replace() drops them.
    if isinstance(value, DatetimeWithNanoseconds):
        sub_second_ns = value.nanosecond
    else:
        sub_second_ns = value.microsecond * 1_000

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)

    whole = value.replace(microsecond=0) - _EPOCH
    seconds = whole.days * 86_400 + whole.seconds
    return seconds * NANOS_PER_SECOND + sub_second_ns


def to_datetime(timestamp_ns: int) -> DatetimeWithNanoseconds:
    """Convert epoch nanoseconds to a UTC ``DatetimeWithNanoseconds``.

    Raises:
        ValueError: If the timestamp is outside the database's range.
    """
    if not MIN_TIMESTAMP_NS <= timestamp_ns <= MAX_TIMESTAMP_NS:
        raise ValueError(f"Timestamp {timestamp_ns}ns is outside the supported range")

    seconds, nanos = divmod(timestamp_ns, NANOS_PER_SECOND)
    base = _EPOCH + timedelta(seconds=seconds)
    return DatetimeWithNanoseconds(
        base.year,
        base.month,
        base.day,
        base.hour,
        base.minute,
        base.second,
        nanosecond=nanos,
        tzinfo=UTC,
    )


def parse_timestamp(text: str) -> int:
    """Parse an RFC 3339 timestamp (up to nanosecond precision) to epoch nanoseconds.

    Args:
        text: e.g. ``2024-03-01T12:00:00.123456789Z`` or ``2024-03-01T14:00:00+02:00``

    Raises:
        TimestampParseError: If the string is not RFC 3339 or out of range.
    """
    match = _RFC3339.match(text.strip())
    if match is None:
        raise TimestampParseError(f"Not an RFC 3339 timestamp: {text!r}")

    offset = match["offset"]
    if offset in ("Z", "z"):
        offset = "+00:00"

    try:
        whole = datetime.fromisoformat(f"{match['date']}T{match['time']}{offset}")
    except ValueError as e:
        raise TimestampParseError(f"Invalid timestamp {text!r}: {e}") from e

    fraction = match["fraction"] or ""
    nanos = int(fraction.ljust(9, "0")) if fraction else 0

    # Offsets can push a valid local time outside the UTC range.
    try:
        result = from_datetime(whole.astimezone(UTC)) + nanos
    except OverflowError as e:
        raise TimestampParseError(f"Timestamp out of range: {text!r}") from e
    if not MIN_TIMESTAMP_NS <= result <= MAX_TIMESTAMP_NS:
        raise TimestampParseError(f"Timestamp out of range: {text!r}")
    return result


def format_timestamp(timestamp_ns: int) -> str:
    """Format epoch nanoseconds as RFC 3339 in UTC.

    The fraction is trimmed to the precision actually present, matching what
    ``gcloud`` accepts for ``--read-timestamp`` and ``--version-time``.
    """
    seconds, nanos = divmod(timestamp_ns, NANOS_PER_SECOND)
    dt = _EPOCH + timedelta(seconds=seconds)
    # Not strftime: %Y is not zero-padded below year 1000 on every platform
    whole = f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    if nanos == 0:
        return f"{whole}Z"
    fraction = str(nanos).rjust(9, "0").rstrip("0")
    return f"{whole}.{fraction}Z"


def format_duration(duration_ns: int) -> str:
    """Short human-readable duration, e.g. ``10ms`` or ``7d 0h``."""
    if duration_ns < NANOS_PER_MILLISECOND:
        return f"{duration_ns}ns"
    if duration_ns < NANOS_PER_SECOND:
        return f"{duration_ns / NANOS_PER_MILLISECOND:g}ms"
    seconds = duration_ns / NANOS_PER_SECOND
    if seconds < 3600:
        return f"{seconds:g}s"
    hours, _ = divmod(int(seconds), 3600)
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h" if days else f"{hours}h"
