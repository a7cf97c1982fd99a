"""Bookings repository - persistence for the bookings table.

Uses raw SQL with psycopg2 (no ORM). All functions take the caller's cursor
so they run inside the caller's transaction.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from tripdesk.infra.db import fetchall, fetchone, for_update

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed")

# Statuses that occupy a package's dates
BLOCKING_STATUSES = ("pending", "confirmed")


@dataclass(frozen=True)
class Booking:
    id: int
    user_id: int | None
    package_id: int
    total_people: int
    start_date: date
    end_date: date
    status: str
    total_amount: Decimal
    payment_status: str
    payment_details: dict[str, Any] | None
    special_requests: str | None
    guest_name: str | None
    guest_email: str | None
    guest_phone: str | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def to_public(self) -> dict[str, Any]:
        """Serialise for API responses (camelCase keys, ISO dates)."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "packageId": self.package_id,
            "totalPeople": self.total_people,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "status": self.status,
            "totalAmount": float(self.total_amount),
            "paymentStatus": self.payment_status,
            "paymentDetails": self.payment_details,
            "specialRequests": self.special_requests,
            "guestName": self.guest_name,
            "guestEmail": self.guest_email,
            "guestPhone": self.guest_phone,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


_BOOKING_COLUMNS = """
    id, user_id, package_id, total_people, start_date, end_date,
    status, total_amount, payment_status, payment_details, special_requests,
    guest_name, guest_email, guest_phone, created_at, updated_at
"""


def _decode_details(raw: Any) -> dict[str, Any] | None:
    # psycopg2 decodes jsonb to dict; text columns or fakes may hand back str
    if raw is None:
        return None
    if isinstance(raw, str):
        return json.loads(raw)
    return dict(raw)


def _row_to_booking(row: tuple) -> Booking:
    return Booking(
        id=row[0],
        user_id=row[1],
        package_id=row[2],
        total_people=row[3],
        start_date=row[4],
        end_date=row[5],
        status=row[6],
        total_amount=Decimal(row[7]),
        payment_status=row[8],
        payment_details=_decode_details(row[9]),
        special_requests=row[10],
        guest_name=row[11],
        guest_email=row[12],
        guest_phone=row[13],
        created_at=row[14],
        updated_at=row[15],
    )


def find_overlapping_booking(
    cur: PgCursor,
    *,
    package_id: int,
    start_date: date,
    end_date: date,
) -> int | None:
    """Return the id of one booking overlapping [start_date, end_date), or None.

    Overlap formula: existing.start_date < new.end_date AND existing.end_date > new.start_date.
    Strict inequality lets a booking start on the day another one ends.
    Only pending and confirmed bookings occupy dates.
    """
    row = fetchone(
        cur,
        """
        SELECT id
        FROM bookings
        WHERE package_id = %s
          AND status = ANY(%s)
          AND start_date < %s
          AND end_date > %s
        ORDER BY start_date
        LIMIT 1
        """,
        (package_id, list(BLOCKING_STATUSES), end_date, start_date),
    )
    return row[0] if row else None


def insert_booking(
    cur: PgCursor,
    *,
    package_id: int,
    total_people: int,
    start_date: date,
    end_date: date,
    total_amount: Decimal,
    user_id: int | None = None,
    special_requests: str | None = None,
    guest_name: str | None = None,
    guest_email: str | None = None,
    guest_phone: str | None = None,
) -> int:
    """Insert a booking in pending/pending state and return its id.

    Args:
        cur: Database cursor (within transaction).
        package_id: Package being booked.
        total_people: Guest count.
        start_date: First day (inclusive).
        end_date: Last day (exclusive).
        total_amount: Amount to charge, major currency units.
        user_id: Owning user, or None for a guest booking.
        special_requests: Free text from the booker.
        guest_name: Guest contact name (guest bookings only).
        guest_email: Guest contact e-mail (guest bookings only).
        guest_phone: Guest contact phone (guest bookings only).

    Returns:
        Generated booking id.
    """
    cur.execute(
        """
        INSERT INTO bookings (
            user_id, package_id, total_people, start_date, end_date,
            total_amount, status, payment_status, special_requests,
            guest_name, guest_email, guest_phone, created_at, updated_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, 'pending', 'pending', %s, %s, %s, %s, now(), now())
        RETURNING id
        """,
        (
            user_id,
            package_id,
            total_people,
            start_date,
            end_date,
            total_amount,
            special_requests,
            guest_name,
            guest_email,
            guest_phone,
        ),
    )
    row = cur.fetchone()
    return row[0]


def get_booking(cur: PgCursor, booking_id: int, *, lock: bool = False) -> Booking | None:
    """Fetch a booking by id.

    Args:
        cur: Database cursor.
        booking_id: Booking identifier.
        lock: If True, lock the row (SELECT ... FOR UPDATE) until the
            transaction ends.

    Returns:
        Booking, or None if it does not exist.
    """
    query = f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE id = %s"
    if lock:
        row = for_update(cur, query, (booking_id,))
    else:
        row = fetchone(cur, query, (booking_id,))
    if row is None:
        return None
    return _row_to_booking(row)


def list_bookings_for_user(
    cur: PgCursor,
    user_id: int,
    *,
    status: str | None = None,
) -> list[Booking]:
    """List a user's bookings, latest start_date first."""
    conditions = ["user_id = %s"]
    params: list = [user_id]

    if status:
        conditions.append("status = %s")
        params.append(status)

    where = " AND ".join(conditions)
    rows = fetchall(
        cur,
        f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE {where} ORDER BY start_date DESC, id DESC",
        params,
    )
    return [_row_to_booking(row) for row in rows]


def merge_payment_details(cur: PgCursor, booking_id: int, patch: dict[str, Any]) -> int:
    """Merge keys into payment_details without dropping existing ones.

    Returns:
        Number of rows updated (0 if the booking vanished).
    """
    cur.execute(
        """
        UPDATE bookings
        SET payment_details = COALESCE(payment_details, '{}'::jsonb) || %s::jsonb,
            updated_at = now()
        WHERE id = %s
        """,
        (json.dumps(patch), booking_id),
    )
    return cur.rowcount


def mark_paid_if_unpaid(cur: PgCursor, booking_id: int, details: dict[str, Any]) -> int:
    """Move a booking to paid/confirmed unless it is already paid.

    The WHERE guard on payment_status makes concurrent callers race safely:
    exactly one of them updates the row, the others see rowcount 0.

    Returns:
        Number of rows updated (0 or 1).
    """
    cur.execute(
        """
        UPDATE bookings
        SET payment_status = 'paid',
            status = 'confirmed',
            payment_details = COALESCE(payment_details, '{}'::jsonb) || %s::jsonb,
            updated_at = now()
        WHERE id = %s AND payment_status != 'paid'
        """,
        (json.dumps(details), booking_id),
    )
    return cur.rowcount


def get_payment_status(cur: PgCursor, booking_id: int) -> str | None:
    row = fetchone(cur, "SELECT payment_status FROM bookings WHERE id = %s", (booking_id,))
    return row[0] if row else None
