"""Availability checker - capacity, date overlap and pricing for a package.

Read-only: nothing here writes, so it is safe to call repeatedly. It does not
reserve anything either; two callers can both see "available" for the same
dates. The bookings table's exclusion constraint rejects the second insert.

Overlap formula: (existing.start_date < requested.end_date) AND
(existing.end_date > requested.start_date). A booking ending on day X and
another starting on day X do not overlap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from tripdesk.domain.validation import money_to_number, round_money
from tripdesk.errors import NotFoundError
from tripdesk.infra.repositories.bookings_repository import find_overlapping_booking
from tripdesk.infra.repositories.packages_repository import get_active_package

logger = logging.getLogger(__name__)

TAX_RATE = Decimal("0.18")

CAPACITY_EXCEEDED = "capacity_exceeded"
DATE_CONFLICT = "date_conflict"


@dataclass(frozen=True)
class Pricing:
    base_price: Decimal
    taxes: Decimal
    total: Decimal

    def to_public(self) -> dict:
        return {
            "basePrice": money_to_number(self.base_price),
            "taxes": money_to_number(self.taxes),
            "total": money_to_number(self.total),
        }


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    message: str
    reason: str | None = None
    pricing: Pricing | None = None


def compute_pricing(unit_price: Decimal, guests: int, tax_rate: Decimal = TAX_RATE) -> Pricing:
    """Price a package for *guests* people.

    Taxes and total are derived from unrounded intermediates; each reported
    figure is then rounded half-up to 2 decimal places.
    """
    base = unit_price * guests
    taxes = base * tax_rate
    return Pricing(
        base_price=round_money(base),
        taxes=round_money(taxes),
        total=round_money(base + taxes),
    )


def check_availability(
    cur: PgCursor,
    *,
    package_id: int,
    start_date: date,
    end_date: date,
    guests: int,
) -> AvailabilityResult:
    """Decide whether a package can be booked for a date range and guest count.

    Args:
        cur: Database cursor.
        package_id: Package to check.
        start_date: First day (inclusive).
        end_date: Last day (exclusive); caller guarantees start_date < end_date.
        guests: Number of people.

    Returns:
        AvailabilityResult. Unavailability (capacity or dates) is a normal
        result, not an error.

    Raises:
        NotFoundError: Package absent or inactive.
    """
    package = get_active_package(cur, package_id)
    if package is None:
        raise NotFoundError(f"Package with ID {package_id} not found or is inactive")

    if package.max_people is not None and guests > package.max_people:
        logger.info(
            "availability rejected: capacity",
            extra={
                "extra_fields": {
                    "package_id": package_id,
                    "guests": guests,
                    "max_people": package.max_people,
                }
            },
        )
        return AvailabilityResult(
            available=False,
            reason=CAPACITY_EXCEEDED,
            message=f"Maximum {package.max_people} guests allowed for this package",
        )

    conflicting_id = find_overlapping_booking(
        cur,
        package_id=package_id,
        start_date=start_date,
        end_date=end_date,
    )
    if conflicting_id is not None:
        logger.info(
            "availability rejected: date conflict",
            extra={
                "extra_fields": {
                    "package_id": package_id,
                    "requested_start": start_date.isoformat(),
                    "requested_end": end_date.isoformat(),
                    "conflicting_booking_id": conflicting_id,
                }
            },
        )
        return AvailabilityResult(
            available=False,
            reason=DATE_CONFLICT,
            message="This package is already booked for the selected dates or part of the range",
        )

    return AvailabilityResult(
        available=True,
        message="The selected package is available for booking",
        pricing=compute_pricing(package.base_price, guests),
    )
