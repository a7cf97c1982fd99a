"""Payment domain logic - order creation and callback verification.

Two independent operations joined only by the booking id and the gateway
signature. Either may be delivered more than once, in any order relative to
retries:

- create_payment_order: guards against paying twice and against a tampered
  amount, creates the remote order, records its id on the booking. The
  booking row lock is held across the gateway call (up to the client's
  timeout), so order requests for one booking queue behind each other.
- verify_payment: checks the HMAC signature, then moves the booking
  pending -> paid / confirmed with a conditional UPDATE. Re-deliveries and
  concurrent callbacks resolve to success without writing twice. Any order
  issued for the booking settles it, not only the most recent one.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

from psycopg2.extensions import cursor as PgCursor

from tripdesk.domain import validation
from tripdesk.errors import (
    ConflictError,
    GatewayError,
    InternalError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)
from tripdesk.gateway.client import GatewayFailure, GatewayOrder, OrderResult
from tripdesk.gateway.signature import verify_payment_signature
from tripdesk.infra.repositories.bookings_repository import (
    get_booking,
    get_payment_status,
    mark_paid_if_unpaid,
    merge_payment_details,
)
from tripdesk.infra.time import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "INR"
_CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")


class PaymentGateway(Protocol):
    """What the order initiator needs from a gateway client."""

    @property
    def key_id(self) -> str: ...

    def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> OrderResult: ...


@dataclass(frozen=True)
class OrderRequest:
    booking_id: int
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class OrderInfo:
    order_id: str
    key_id: str
    amount: int
    currency: str
    booking_id: int

    def to_public(self) -> dict[str, Any]:
        return {
            "orderId": self.order_id,
            "keyId": self.key_id,
            "amount": self.amount,
            "currency": self.currency,
            "bookingId": self.booking_id,
        }


@dataclass(frozen=True)
class VerifyRequest:
    order_id: str
    payment_id: str
    signature: str
    booking_id: int


@dataclass(frozen=True)
class VerificationResult:
    booking_id: int
    payment_id: str
    already_paid: bool

    def to_public(self) -> dict[str, Any]:
        return {
            "paymentId": self.payment_id,
            "bookingId": self.booking_id,
            "alreadyPaid": self.already_paid,
        }


def to_minor_units(amount: Decimal) -> int:
    """Major units to minor units (x100), rounded half-up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _new_receipt(booking_id: int) -> str:
    return f"rcpt_booking_{booking_id}_{uuid.uuid4().hex[:12]}"


def validate_order_request(data: dict[str, Any]) -> OrderRequest:
    """Validate bookingId, amount and optional currency.

    Raises:
        ValidationError: Missing or malformed field.
    """
    validation.require_fields(
        {"bookingId": data.get("bookingId"), "amount": data.get("amount")},
        "Missing required payment details",
    )
    booking_id = validation.positive_int(data["bookingId"], "bookingId")
    amount = validation.money(data["amount"], "amount")

    currency = data.get("currency")
    if validation.is_blank(currency):
        currency = DEFAULT_CURRENCY
    if not isinstance(currency, str) or not _CURRENCY_PATTERN.match(currency.strip()):
        raise ValidationError("currency must be a 3-letter ISO code", fields=["currency"])

    return OrderRequest(booking_id=booking_id, amount=amount, currency=currency.strip().upper())


def create_payment_order(
    cur: PgCursor,
    request: OrderRequest,
    *,
    gateway: PaymentGateway,
    correlation_id: str | None = None,
) -> OrderInfo:
    """Create a gateway order for a booking.

    The booking row is locked for the duration so concurrent order requests
    for the same booking run one after the other.

    Args:
        cur: Database cursor (within transaction).
        request: Validated order request.
        gateway: Payment gateway client.
        correlation_id: Optional correlation ID for tracing.

    Returns:
        OrderInfo for the browser checkout.

    Raises:
        NotFoundError: Booking does not exist.
        ConflictError: Booking is already paid.
        ValidationError: Amount differs from the booking's stored total.
        GatewayError: Gateway unreachable or returned an unusable response.
    """
    booking = get_booking(cur, request.booking_id, lock=True)
    if booking is None:
        raise NotFoundError("Booking not found")

    if booking.payment_status == "paid":
        raise ConflictError("This booking has already been paid")

    if request.amount != booking.total_amount:
        logger.warning(
            "payment amount mismatch",
            extra={
                "extra_fields": {
                    "booking_id": booking.id,
                    "requested_amount": str(request.amount),
                    "stored_amount": str(booking.total_amount),
                    "correlation_id": correlation_id,
                }
            },
        )
        raise ValidationError(
            "Payment amount does not match booking amount",
            fields=["amount"],
        )

    result = gateway.create_order(
        amount_minor=to_minor_units(request.amount),
        currency=request.currency,
        receipt=_new_receipt(booking.id),
        notes={"bookingId": str(booking.id)},
        correlation_id=correlation_id,
    )

    if isinstance(result, GatewayFailure):
        logger.error(
            "payment order creation failed",
            extra={
                "extra_fields": {
                    "booking_id": booking.id,
                    "reason": result.reason,
                    "http_status": result.http_status,
                    "correlation_id": correlation_id,
                }
            },
        )
        raise GatewayError(f"Payment order creation failed: {result.reason}")

    order: GatewayOrder = result
    updated = merge_payment_details(cur, booking.id, {"orderId": order.order_id})
    if updated != 1:
        logger.warning(
            "order id not recorded on booking",
            extra={
                "extra_fields": {
                    "booking_id": booking.id,
                    "order_id": order.order_id,
                    "correlation_id": correlation_id,
                }
            },
        )

    logger.info(
        "payment order created",
        extra={
            "extra_fields": {
                "booking_id": booking.id,
                "order_id": order.order_id,
                "amount_minor": order.amount,
                "correlation_id": correlation_id,
            }
        },
    )

    return OrderInfo(
        order_id=order.order_id,
        key_id=gateway.key_id,
        amount=order.amount,
        currency=order.currency,
        booking_id=booking.id,
    )


def validate_verify_request(data: dict[str, Any]) -> VerifyRequest:
    """Validate orderId, paymentId, signature and bookingId.

    Raises:
        ValidationError: Missing or malformed field.
    """
    validation.require_fields(
        {
            "orderId": data.get("orderId"),
            "paymentId": data.get("paymentId"),
            "signature": data.get("signature"),
            "bookingId": data.get("bookingId"),
        },
        "Missing required payment verification details",
    )
    for name in ("orderId", "paymentId", "signature"):
        if not isinstance(data[name], str):
            raise ValidationError(f"{name} must be a string", fields=[name])

    return VerifyRequest(
        order_id=data["orderId"].strip(),
        payment_id=data["paymentId"].strip(),
        signature=data["signature"].strip(),
        booking_id=validation.positive_int(data["bookingId"], "bookingId"),
    )


def verify_payment(
    cur: PgCursor,
    request: VerifyRequest,
    *,
    secret: str,
    correlation_id: str | None = None,
) -> VerificationResult:
    """Verify a payment callback and settle the booking.

    Flow:
    1. Signature check (fail closed, nothing is read or written on mismatch).
    2. Load booking (404 if absent).
    3. Already paid -> success without writing.
    4. Conditional UPDATE guarded by payment_status != 'paid'.
    5. Zero rows updated -> re-read: paid means another caller won (success),
       anything else is a genuine failure.

    Args:
        cur: Database cursor (within transaction).
        request: Validated verification request.
        secret: Gateway HMAC secret.
        correlation_id: Optional correlation ID for tracing.

    Returns:
        VerificationResult; already_paid is True when this call did not
        perform the transition.

    Raises:
        SignatureMismatchError: Signature does not match.
        NotFoundError: Booking does not exist.
        InternalError: The transition could not be written.
    """
    if not verify_payment_signature(
        request.order_id, request.payment_id, request.signature, secret
    ):
        logger.warning(
            "payment signature mismatch",
            extra={
                "extra_fields": {
                    "booking_id": request.booking_id,
                    "order_id": request.order_id,
                    "correlation_id": correlation_id,
                }
            },
        )
        raise SignatureMismatchError("signature mismatch")

    booking = get_booking(cur, request.booking_id)
    if booking is None:
        raise NotFoundError("Booking associated with this payment not found")

    if booking.payment_status == "paid":
        logger.info(
            "payment already verified",
            extra={"extra_fields": {"booking_id": booking.id, "correlation_id": correlation_id}},
        )
        return VerificationResult(
            booking_id=booking.id,
            payment_id=request.payment_id,
            already_paid=True,
        )

    details = {
        "orderId": request.order_id,
        "paymentId": request.payment_id,
        "signatureVerified": True,
        "verifiedAt": utc_now_iso(),
    }
    updated = mark_paid_if_unpaid(cur, booking.id, details)

    if updated == 1:
        logger.info(
            "payment verified",
            extra={
                "extra_fields": {
                    "booking_id": booking.id,
                    "payment_id": request.payment_id,
                    "correlation_id": correlation_id,
                }
            },
        )
        return VerificationResult(
            booking_id=booking.id,
            payment_id=request.payment_id,
            already_paid=False,
        )

    current_status = get_payment_status(cur, booking.id)
    if current_status == "paid":
        logger.info(
            "payment settled by a concurrent callback",
            extra={"extra_fields": {"booking_id": booking.id, "correlation_id": correlation_id}},
        )
        return VerificationResult(
            booking_id=booking.id,
            payment_id=request.payment_id,
            already_paid=True,
        )

    raise InternalError(
        f"Failed to mark booking {booking.id} as paid (payment_status={current_status})"
    )
