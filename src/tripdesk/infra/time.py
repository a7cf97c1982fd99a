"""UTC clock helpers; stored timestamps and payment_details use UTC."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """e.g. 2025-06-01T10:15:30.123Z (the form written to payment_details)."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")
