"""Per-request correlation id.

The app middleware resolves an id for every request, stores it in a
ContextVar for the JSON log formatter, and echoes it in the
X-Correlation-ID response header. Domain calls take it as an explicit
correlation_id argument so gateway logs can be tied back to the request.
"""

import re
import uuid
from contextvars import ContextVar, Token

CORRELATION_ID_HEADER = "X-Correlation-ID"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Inbound ids end up in logs and response headers
_MAX_INBOUND_LENGTH = 64
_INBOUND_PATTERN = re.compile(r"^[A-Za-z0-9._:-]+$")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def resolve_correlation_id(inbound: str | None) -> str:
    """Keep a caller-supplied id if it is short and plain, otherwise mint one."""
    if inbound and len(inbound) <= _MAX_INBOUND_LENGTH and _INBOUND_PATTERN.match(inbound):
        return inbound
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Current request's id, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)
