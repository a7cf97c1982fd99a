"""Packages repository - read-only access to bookable packages.

Uses raw SQL with psycopg2 (no ORM). Packages are written by vendor/admin
tooling; the booking flow only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from tripdesk.infra.db import fetchone


@dataclass(frozen=True)
class Package:
    id: int
    name: str
    base_price: Decimal
    max_people: int | None
    is_active: bool


_PACKAGE_COLUMNS = "id, name, base_price, max_people, is_active"


def _row_to_package(row: tuple) -> Package:
    return Package(
        id=row[0],
        name=row[1],
        base_price=Decimal(row[2]),
        max_people=row[3],
        is_active=bool(row[4]),
    )


def get_active_package(cur: PgCursor, package_id: int) -> Package | None:
    """Fetch a package by id, only if it is active.

    Args:
        cur: Database cursor.
        package_id: Package identifier.

    Returns:
        Package, or None if absent or inactive.
    """
    row = fetchone(
        cur,
        f"SELECT {_PACKAGE_COLUMNS} FROM packages WHERE id = %s AND is_active = TRUE",
        (package_id,),
    )
    if row is None:
        return None
    return _row_to_package(row)
