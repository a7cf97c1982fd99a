"""DB-level exclusion constraint against overlapping bookings.

The availability check and the booking insert run in separate requests, so
two callers can both see a package as free. This constraint rejects the
second insert: no two pending/confirmed bookings of the same package may
share a day.

daterange('[)') uses the same half-open semantics as the availability
check: end_date_A == start_date_B is NOT a conflict.

Revision ID: 002_booking_overlap_constraint
Revises: 001_initial_schema
Create Date: 2026-10-17
"""
from __future__ import annotations

from alembic import op

revision = "002_booking_overlap_constraint"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute("""
        ALTER TABLE bookings
            ADD CONSTRAINT no_package_overlap
            EXCLUDE USING GIST (
                package_id WITH =,
                daterange(start_date, end_date, '[)') WITH &&
            )
            WHERE (status IN ('pending', 'confirmed'))
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS no_package_overlap")
    # btree_gist is kept: other indexes may depend on it.
