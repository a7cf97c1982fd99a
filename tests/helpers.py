"""Shared test helper functions for Tripdesk tests.

These are NOT fixtures - they are regular functions and small fakes that
test modules import directly.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from tripdesk.api.auth import issue_session_token
from tripdesk.gateway.client import GatewayOrder
from tripdesk.gateway.signature import compute_payment_signature

TEST_JWT_SECRET = "test-session-secret-at-least-32-bytes!"
TEST_GATEWAY_SECRET = "test_razorpay_secret"
TEST_KEY_ID = "rzp_test_key"

_CREATED = datetime(2025, 5, 1, 9, 30, tzinfo=timezone.utc)


def package_row(
    id: int = 5,
    name: str = "Goa Beach Escape",
    base_price: Decimal = Decimal("10000.00"),
    max_people: int | None = 4,
    is_active: bool = True,
) -> tuple:
    """Row in packages column order (id, name, base_price, max_people, is_active)."""
    return (id, name, base_price, max_people, is_active)


def booking_row(
    id: int = 42,
    user_id: int | None = None,
    package_id: int = 5,
    total_people: int = 2,
    start_date: date = date(2025, 6, 1),
    end_date: date = date(2025, 6, 5),
    status: str = "pending",
    total_amount: Decimal = Decimal("23600.00"),
    payment_status: str = "pending",
    payment_details: dict | None = None,
    special_requests: str | None = None,
    guest_name: str | None = "Asha Rao",
    guest_email: str | None = "asha@example.com",
    guest_phone: str | None = "+919876543210",
) -> tuple:
    """Row in bookings column order, guest-owned unless user_id is given."""
    if user_id is not None:
        guest_name = guest_email = guest_phone = None
    return (
        id,
        user_id,
        package_id,
        total_people,
        start_date,
        end_date,
        status,
        total_amount,
        payment_status,
        payment_details,
        special_requests,
        guest_name,
        guest_email,
        guest_phone,
        _CREATED,
        _CREATED,
    )


class FakeGateway:
    """In-memory gateway: records create_order calls, returns a fixed result."""

    def __init__(self, result=None, key_id: str = TEST_KEY_ID):
        self._key_id = key_id
        self.result = result
        self.calls: list[dict] = []

    @property
    def key_id(self) -> str:
        return self._key_id

    def create_order(self, **kwargs):
        self.calls.append(kwargs)
        if self.result is not None:
            return self.result
        return GatewayOrder(
            order_id="order_TEST123",
            amount=kwargs["amount_minor"],
            currency=kwargs["currency"],
            receipt=kwargs["receipt"],
        )


def sign(order_id: str, payment_id: str, secret: str = TEST_GATEWAY_SECRET) -> str:
    return compute_payment_signature(order_id, payment_id, secret)


def session_cookie(user_id: int = 7, email: str = "traveller@example.com") -> str:
    return issue_session_token(user_id, email=email, secret=TEST_JWT_SECRET)
