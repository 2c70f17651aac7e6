"""
UTC timestamp helpers shared by the queue, the reconciler and the read APIs.

The database columns are naive ``DateTime`` holding UTC; everything that
crosses the wire is ISO-8601. These helpers keep the two conversions in
one place.

Tags:
    timestamps, utc, datetime, dindex

Doc-Types:
    - Utility Documentation
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def to_db_utc(dt: datetime) -> datetime:
    """Convert to the naive-UTC form stored in ``DateTime`` columns."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def db_utc_now() -> datetime:
    return to_db_utc(utc_now())


def to_iso8601(dt: datetime | None) -> str | None:
    """Serialise a (possibly naive-UTC) datetime, marking it as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.isoformat().replace("+00:00", "Z")
