"""Booking writer - validates and persists new reservations.

A booking belongs either to an authenticated user (user_id set, guest
fields NULL) or to an anonymous guest (user_id NULL, name/email/phone set).
When a session is present, guest fields in the request are ignored.

The writer loads the package first: inactive packages are not bookable and
guests may not exceed max_people. It does not re-run the overlap query. The
bookings table's no_package_overlap exclusion constraint rejects an insert
that would overlap another pending/confirmed booking; that surfaces here as
ConflictError.

The amount is the caller's figure. It is checked against the stored total
again when a payment order is created, not recomputed here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from tripdesk.domain import validation
from tripdesk.errors import ConflictError, InternalError, NotFoundError, ValidationError
from tripdesk.infra.repositories.bookings_repository import Booking, get_booking, insert_booking
from tripdesk.infra.repositories.packages_repository import get_active_package

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("packageId", "startDate", "endDate", "guests", "amount")
_GUEST_FIELDS = ("guestName", "guestEmail", "guestPhone")


@dataclass(frozen=True)
class NewBooking:
    """A validated booking request, ready to insert."""

    package_id: int
    start_date: date
    end_date: date
    guests: int
    amount: Decimal
    user_id: int | None = None
    special_requests: str | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    guest_phone: str | None = None


def _clean_text(value: Any) -> str | None:
    if validation.is_blank(value):
        return None
    return str(value).strip()


def validate_booking_request(data: dict[str, Any], *, user_id: int | None) -> NewBooking:
    """Turn a raw request payload into a NewBooking.

    Args:
        data: Request fields keyed by their wire names (packageId, startDate,
            endDate, guests, amount, specialRequests, guestName, guestEmail,
            guestPhone).
        user_id: Authenticated user id, or None for a guest.

    Returns:
        NewBooking.

    Raises:
        ValidationError: A field is missing or malformed; the message names it.
    """
    validation.require_fields(
        {name: data.get(name) for name in _REQUIRED_FIELDS},
        "Missing required booking details",
    )

    package_id = validation.positive_int(data["packageId"], "packageId")
    start_date, end_date = validation.date_range(data["startDate"], data["endDate"])
    guests = validation.positive_int(data["guests"], "guests")
    amount = validation.money(data["amount"], "amount")
    special_requests = _clean_text(data.get("specialRequests"))

    if user_id is not None:
        return NewBooking(
            package_id=package_id,
            start_date=start_date,
            end_date=end_date,
            guests=guests,
            amount=amount,
            user_id=user_id,
            special_requests=special_requests,
        )

    validation.require_fields(
        {name: data.get(name) for name in _GUEST_FIELDS},
        "Guest details required for booking without an account",
    )
    return NewBooking(
        package_id=package_id,
        start_date=start_date,
        end_date=end_date,
        guests=guests,
        amount=amount,
        special_requests=special_requests,
        guest_name=_clean_text(data["guestName"]),
        guest_email=validation.email(data["guestEmail"], "guestEmail"),
        guest_phone=_clean_text(data["guestPhone"]),
    )


def create_booking(cur: PgCursor, new_booking: NewBooking) -> Booking:
    """Insert a pending booking and return the stored row.

    Args:
        cur: Database cursor (within transaction).
        new_booking: Validated request.

    Returns:
        The persisted Booking, re-read after insert.

    Raises:
        NotFoundError: Package absent or inactive.
        ValidationError: More guests than the package allows.
        ConflictError: Dates overlap an existing pending/confirmed booking.
        InternalError: The inserted row could not be read back.
    """
    package = get_active_package(cur, new_booking.package_id)
    if package is None:
        raise NotFoundError(f"Package with ID {new_booking.package_id} not found or is inactive")

    if package.max_people is not None and new_booking.guests > package.max_people:
        raise ValidationError(
            f"Maximum {package.max_people} guests allowed for this package",
            fields=["guests"],
        )

    try:
        booking_id = insert_booking(
            cur,
            package_id=new_booking.package_id,
            total_people=new_booking.guests,
            start_date=new_booking.start_date,
            end_date=new_booking.end_date,
            total_amount=new_booking.amount,
            user_id=new_booking.user_id,
            special_requests=new_booking.special_requests,
            guest_name=new_booking.guest_name,
            guest_email=new_booking.guest_email,
            guest_phone=new_booking.guest_phone,
        )
    except pg_errors.ExclusionViolation:
        logger.info(
            "booking insert rejected: overlapping dates",
            extra={
                "extra_fields": {
                    "package_id": new_booking.package_id,
                    "start_date": new_booking.start_date.isoformat(),
                    "end_date": new_booking.end_date.isoformat(),
                }
            },
        )
        raise ConflictError("This package is already booked for the selected dates")
    except pg_errors.ForeignKeyViolation:
        raise NotFoundError(f"Package with ID {new_booking.package_id} not found")

    booking = get_booking(cur, booking_id)
    if booking is None:
        raise InternalError(f"Booking {booking_id} missing right after insert")

    logger.info(
        "booking created",
        extra={
            "extra_fields": {
                "booking_id": booking.id,
                "package_id": booking.package_id,
                "guest_booking": booking.is_guest,
            }
        },
    )
    return booking
