"""Payment endpoints.

- POST /payment/order: create a gateway order for a pending booking.
- POST /payment/verify: verify the gateway callback and settle the booking.

The two calls are independent and each is safe to repeat.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from fastapi import APIRouter
from pydantic import BaseModel

from tripdesk.observability.correlation import get_correlation_id
from tripdesk.observability.logging import get_logger
from tripdesk.observability.redaction import safe_log_context

if TYPE_CHECKING:
    from tripdesk.gateway.client import RazorpayClient

router = APIRouter(prefix="/payment", tags=["payments"])

logger = get_logger(__name__)

# Module-level gateway client (lazy init, can be overridden for tests)
_gateway_client: RazorpayClient | None = None


def _get_gateway_client() -> RazorpayClient:
    """Get gateway client (allows override in tests).

    Raises:
        ConfigurationError: If gateway credentials are missing.
    """
    global _gateway_client
    if _gateway_client is None:
        from tripdesk.gateway.client import RazorpayClient
        _gateway_client = RazorpayClient()
    return _gateway_client


def _get_signing_secret() -> str:
    """Get callback HMAC secret (allows override in tests)."""
    from tripdesk.gateway.signature import get_signing_secret

    return get_signing_secret()


class CreateOrderRequest(BaseModel):
    bookingId: int | None = None
    amount: Decimal | None = None
    currency: str | None = None


class VerifyPaymentRequest(BaseModel):
    orderId: str | None = None
    paymentId: str | None = None
    signature: str | None = None
    bookingId: int | None = None


@router.post("/order")
def create_order(body: CreateOrderRequest) -> dict:
    """Create a payment order for a booking.

    400 on missing/invalid fields or amount mismatch, 404 unknown booking,
    409 already paid, 502 gateway failure, 500 missing credentials.
    """
    from tripdesk.domain.payments import create_payment_order, validate_order_request
    from tripdesk.infra.db import txn

    correlation_id = get_correlation_id()
    request = validate_order_request(body.model_dump())
    gateway = _get_gateway_client()

    logger.info(
        "creating payment order",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                booking_id=request.booking_id,
                currency=request.currency,
            )
        },
    )

    with txn() as cur:
        order = create_payment_order(
            cur,
            request,
            gateway=gateway,
            correlation_id=correlation_id,
        )

    return {
        "success": True,
        "message": "Payment order created successfully",
        "data": order.to_public(),
    }


@router.post("/verify")
def verify_payment(body: VerifyPaymentRequest) -> dict:
    """Verify a payment callback and mark the booking paid/confirmed.

    Repeated callbacks for an already-paid booking succeed without writing.
    """
    from tripdesk.domain.payments import validate_verify_request
    from tripdesk.domain.payments import verify_payment as settle_payment
    from tripdesk.infra.db import txn

    correlation_id = get_correlation_id()
    request = validate_verify_request(body.model_dump())
    secret = _get_signing_secret()

    logger.info(
        "verifying payment",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                booking_id=request.booking_id,
                order_id=request.order_id,
            )
        },
    )

    with txn() as cur:
        result = settle_payment(
            cur,
            request,
            secret=secret,
            correlation_id=correlation_id,
        )

    message = (
        "Payment already verified successfully"
        if result.already_paid
        else "Payment verified successfully and booking updated"
    )
    return {
        "success": True,
        "message": message,
        "data": result.to_public(),
    }
