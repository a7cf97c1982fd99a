"""Booking endpoints.

- POST /bookings: create a pending booking for the session user or a guest.
- GET /bookings: the session user's bookings.
- GET /bookings/{booking_id}: one booking, owner only.
"""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from tripdesk.api.auth import SessionUser, get_current_user, get_optional_user
from tripdesk.domain import validation
from tripdesk.errors import NotFoundError, PermissionDeniedError, ValidationError
from tripdesk.infra.repositories.bookings_repository import BOOKING_STATUSES
from tripdesk.observability.correlation import get_correlation_id
from tripdesk.observability.logging import get_logger
from tripdesk.observability.redaction import safe_log_context

router = APIRouter(prefix="/bookings", tags=["bookings"])

logger = get_logger(__name__)


class CreateBookingRequest(BaseModel):
    """Presence and field-level rules are checked by the booking writer."""

    packageId: int | None = None
    startDate: str | None = None
    endDate: str | None = None
    guests: int | None = None
    amount: Decimal | None = None
    specialRequests: str | None = None
    guestName: str | None = None
    guestEmail: str | None = None
    guestPhone: str | None = None


@router.post("", status_code=201)
def create_booking(
    body: CreateBookingRequest,
    user: SessionUser | None = Depends(get_optional_user),
) -> dict:
    """Create a booking in pending state.

    With a session the booking belongs to the user and guest fields are
    ignored; without one, guestName, guestEmail and guestPhone are required.
    """
    from tripdesk.domain.bookings import create_booking as write_booking
    from tripdesk.domain.bookings import validate_booking_request
    from tripdesk.infra.db import txn

    new_booking = validate_booking_request(
        body.model_dump(),
        user_id=user.id if user is not None else None,
    )

    with txn() as cur:
        booking = write_booking(cur, new_booking)

    logger.info(
        "booking request completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                booking_id=booking.id,
                guest_booking=booking.is_guest,
            )
        },
    )

    return {
        "success": True,
        "message": "Booking created successfully",
        "data": booking.to_public(),
    }


@router.get("")
def list_bookings(
    status: str | None = Query(None, description="Filter by booking status"),
    user: SessionUser = Depends(get_current_user),
) -> dict:
    """List the session user's bookings, latest start date first."""
    from tripdesk.infra.db import txn
    from tripdesk.infra.repositories.bookings_repository import list_bookings_for_user

    if status is not None and status not in BOOKING_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(BOOKING_STATUSES)}",
            fields=["status"],
        )

    with txn() as cur:
        bookings = list_bookings_for_user(cur, user.id, status=status)

    return {
        "success": True,
        "data": [b.to_public() for b in bookings],
    }


@router.get("/{booking_id}")
def get_booking(
    booking_id: str = Path(..., description="Booking id"),
    user: SessionUser = Depends(get_current_user),
) -> dict:
    """Get one booking. Only its owning user may read it."""
    from tripdesk.infra.db import txn
    from tripdesk.infra.repositories.bookings_repository import get_booking as fetch_booking

    bid = validation.positive_int(booking_id, "bookingId")

    with txn() as cur:
        booking = fetch_booking(cur, bid)

    if booking is None:
        raise NotFoundError(f"Booking with ID {bid} not found")

    if booking.user_id != user.id:
        logger.warning(
            "booking access denied",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    booking_id=bid,
                    user_id=user.id,
                )
            },
        )
        raise PermissionDeniedError("You do not have permission to view this booking")

    return {
        "success": True,
        "data": booking.to_public(),
    }
