"""Thin wrapper around the Razorpay Orders REST API.

Purpose:
- Keep HTTP details out of domain code.
- Validate the gateway's JSON at the boundary and hand back either a
  GatewayOrder or a GatewayFailure, never a raw dict.
- Never log full gateway payloads or credentials (only ids + correlation).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Union

import requests

from tripdesk.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.razorpay.com/v1"
_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class GatewayOrder:
    """A remote order the gateway accepted."""

    order_id: str
    amount: int
    currency: str
    receipt: str | None = None


@dataclass(frozen=True)
class GatewayFailure:
    """The gateway could not be reached or answered with something unusable."""

    reason: str
    http_status: int | None = None


OrderResult = Union[GatewayOrder, GatewayFailure]


def parse_order_response(payload: Any) -> OrderResult:
    """Validate an order-creation response body.

    Args:
        payload: Decoded JSON body.

    Returns:
        GatewayOrder if id, amount and currency are present and well-typed,
        otherwise GatewayFailure.
    """
    if not isinstance(payload, dict):
        return GatewayFailure(reason="order response is not an object")

    order_id = payload.get("id")
    amount = payload.get("amount")
    currency = payload.get("currency")

    if not isinstance(order_id, str) or not order_id:
        return GatewayFailure(reason="order response missing id")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return GatewayFailure(reason="order response has invalid amount")
    if isinstance(amount, float) and not amount.is_integer():
        return GatewayFailure(reason="order response has invalid amount")
    if not isinstance(currency, str) or not currency:
        return GatewayFailure(reason="order response missing currency")

    receipt = payload.get("receipt")
    return GatewayOrder(
        order_id=order_id,
        amount=int(amount),
        currency=currency,
        receipt=receipt if isinstance(receipt, str) else None,
    )


def _error_description(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"gateway returned HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("description"), str):
        return error["description"]
    return f"gateway returned HTTP {response.status_code}"


class RazorpayClient:
    """Client for Razorpay order creation.

    Usage:
        client = RazorpayClient()  # reads RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET
        result = client.create_order(
            amount_minor=2360000,
            currency="INR",
            receipt="rcpt_booking_42_ab12cd34ef56",
            notes={"bookingId": "42"},
        )
        if isinstance(result, GatewayOrder):
            print(result.order_id)
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        *,
        api_base: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            key_id: Public key id. Defaults to RAZORPAY_KEY_ID env var.
            key_secret: Secret key. Defaults to RAZORPAY_KEY_SECRET env var.
            api_base: API root. Defaults to RAZORPAY_API_BASE or the public API.
            session: Optional requests session (tests, connection reuse).

        Raises:
            ConfigurationError: If either credential is missing.
        """
        self._key_id = key_id or os.environ.get("RAZORPAY_KEY_ID")
        self._key_secret = key_secret or os.environ.get("RAZORPAY_KEY_SECRET")
        if not self._key_id or not self._key_secret:
            raise ConfigurationError(
                "Razorpay credentials not provided. "
                "Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
            )
        self._api_base = (
            api_base or os.environ.get("RAZORPAY_API_BASE") or DEFAULT_API_BASE
        ).rstrip("/")
        self._session = session or requests.Session()

    @property
    def key_id(self) -> str:
        """Public key id, safe to hand to the browser checkout."""
        return self._key_id

    def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> OrderResult:
        """Create a remote order.

        Args:
            amount_minor: Amount in minor currency units (paise for INR).
            currency: ISO currency code.
            receipt: Caller-generated unique receipt id.
            notes: Optional key/value notes stored with the order.
            correlation_id: Optional correlation ID for logging.

        Returns:
            GatewayOrder on success, GatewayFailure otherwise. Transport
            errors are reported as GatewayFailure, not raised.
        """
        body: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
        }
        if notes:
            body["notes"] = notes

        try:
            response = self._session.post(
                f"{self._api_base}/orders",
                json=body,
                auth=(self._key_id, self._key_secret),
                timeout=_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            logger.warning(
                "razorpay order request failed",
                extra={
                    "extra_fields": {
                        "error_type": type(exc).__name__,
                        "correlation_id": correlation_id,
                    }
                },
            )
            return GatewayFailure(reason="payment gateway unreachable")

        if not response.ok:
            return GatewayFailure(
                reason=_error_description(response),
                http_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError:
            return GatewayFailure(
                reason="order response is not JSON",
                http_status=response.status_code,
            )

        result = parse_order_response(payload)
        if isinstance(result, GatewayOrder):
            # Log only ids, never the payload
            logger.info(
                "razorpay order created",
                extra={
                    "extra_fields": {
                        "order_id": result.order_id,
                        "correlation_id": correlation_id,
                    }
                },
            )
        return result
