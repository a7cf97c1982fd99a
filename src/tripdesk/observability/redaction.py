"""Log-safe rendering of request data.

Guest bookings carry a name, e-mail and phone; payment callbacks carry a
signature. None of these may reach the logs. Route handlers build their
extra_fields with safe_log_context(), which:

- masks e-mail addresses and phone numbers inside strings,
- drops values stored under secret-looking keys (signature, secret, token,
  password) entirely,
- reduces containers to their shape (dict keys, list length).
"""

import re
from datetime import date
from decimal import Decimal
from typing import Any

_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")

_SECRET_KEY_PARTS = ("signature", "secret", "token", "password")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    # E-mail first: local parts can contain digit runs the phone pattern would eat
    masked = _EMAIL_PATTERN.sub(_REDACTED, value)
    return _PHONE_PATTERN.sub(_REDACTED, masked)


def redact_value(value: Any) -> str:
    """Render one value as a log-safe string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={list(value)})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SECRET_KEY_PARTS)


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Redact every value; replace secret-keyed values wholesale."""
    return {
        key: _REDACTED if _is_secret_key(key) else redact_value(value)
        for key, value in kwargs.items()
    }
