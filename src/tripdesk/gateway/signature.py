"""Payment callback signature verification.

The gateway signs "<order_id>|<payment_id>" with HMAC-SHA256 keyed by the
merchant secret and sends the lowercase hex digest. Never log the signature
or the secret.
"""

import hashlib
import hmac
import os

from tripdesk.errors import ConfigurationError


def get_signing_secret() -> str:
    """Get the HMAC secret (RAZORPAY_KEY_SECRET).

    Raises:
        ConfigurationError: If the secret is not configured.
    """
    secret = os.environ.get("RAZORPAY_KEY_SECRET")
    if not secret:
        raise ConfigurationError("RAZORPAY_KEY_SECRET not configured")
    return secret


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest over "order_id|payment_id"."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    order_id: str,
    payment_id: str,
    signature: str,
    secret: str,
) -> bool:
    """Check a callback signature in constant time.

    Returns:
        True only on an exact match.
    """
    expected = compute_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())
