"""Initial schema: users, packages, bookings (SQL-only).

Bookings are owned by a user (user_id) or by a guest (embedded contact
fields), never both and never neither; the owner check enforces it.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id          BIGSERIAL PRIMARY KEY,
    email       TEXT NOT NULL UNIQUE,
    name        TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS packages (
    id          BIGSERIAL PRIMARY KEY,
    name        TEXT NOT NULL,
    base_price  NUMERIC(12, 2) NOT NULL CHECK (base_price > 0),
    max_people  INTEGER CHECK (max_people IS NULL OR max_people > 0),
    is_active   BOOLEAN NOT NULL DEFAULT TRUE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS bookings (
    id                BIGSERIAL PRIMARY KEY,
    user_id           BIGINT REFERENCES users(id),
    package_id        BIGINT NOT NULL REFERENCES packages(id),
    total_people      INTEGER NOT NULL CHECK (total_people > 0),
    start_date        DATE NOT NULL,
    end_date          DATE NOT NULL,
    status            TEXT NOT NULL DEFAULT 'pending',
    total_amount      NUMERIC(12, 2) NOT NULL CHECK (total_amount > 0),
    payment_status    TEXT NOT NULL DEFAULT 'pending',
    payment_details   JSONB,
    special_requests  TEXT,
    guest_name        TEXT,
    guest_email       TEXT,
    guest_phone       TEXT,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT now(),

    CONSTRAINT bookings_dates_ordered CHECK (start_date < end_date),
    CONSTRAINT bookings_status_valid
        CHECK (status IN ('pending', 'confirmed', 'completed', 'cancelled')),
    CONSTRAINT bookings_payment_status_valid
        CHECK (payment_status IN ('pending', 'paid', 'failed')),
    CONSTRAINT bookings_single_owner CHECK (
        (user_id IS NOT NULL
            AND guest_name IS NULL AND guest_email IS NULL AND guest_phone IS NULL)
        OR
        (user_id IS NULL
            AND guest_name IS NOT NULL AND guest_email IS NOT NULL AND guest_phone IS NOT NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_bookings_package_dates
    ON bookings (package_id, start_date, end_date);

CREATE INDEX IF NOT EXISTS idx_bookings_user
    ON bookings (user_id, start_date DESC)
    WHERE user_id IS NOT NULL;
"""


def upgrade() -> None:
    op.execute(_SQL)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bookings")
    op.execute("DROP TABLE IF EXISTS packages")
    op.execute("DROP TABLE IF EXISTS users")
