"""Tests for payment callback verification.

Covers the signature gate, idempotent re-delivery and the concurrent
callback race. All tests use mocked cursors.
"""

from __future__ import annotations

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from helpers import TEST_GATEWAY_SECRET, FakeGateway, booking_row, sign
from tripdesk.domain.payments import (
    OrderRequest,
    VerifyRequest,
    create_payment_order,
    validate_verify_request,
    verify_payment,
)
from tripdesk.gateway.client import GatewayOrder
from tripdesk.errors import (
    InternalError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)

_ORDER = "order_TEST123"
_PAYMENT = "pay_TEST456"


def _request(signature: str | None = None, booking_id: int = 42) -> VerifyRequest:
    return VerifyRequest(
        order_id=_ORDER,
        payment_id=_PAYMENT,
        signature=signature if signature is not None else sign(_ORDER, _PAYMENT),
        booking_id=booking_id,
    )


def _verify(cur: MagicMock, request: VerifyRequest | None = None):
    return verify_payment(cur, request or _request(), secret=TEST_GATEWAY_SECRET)


class TestValidateVerifyRequest:
    def test_valid(self):
        request = validate_verify_request(
            {"orderId": _ORDER, "paymentId": _PAYMENT, "signature": "abc", "bookingId": "42"}
        )
        assert request.booking_id == 42

    def test_missing_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_verify_request({"orderId": _ORDER})
        assert exc_info.value.fields == ["paymentId", "signature", "bookingId"]


class TestSignatureGate:
    def test_bad_signature_reads_and_writes_nothing(self):
        cur = MagicMock()

        with pytest.raises(SignatureMismatchError):
            _verify(cur, _request(signature="0" * 64))

        cur.execute.assert_not_called()

    def test_single_changed_character_rejected(self):
        good = sign(_ORDER, _PAYMENT)
        altered = good[:-1] + ("0" if good[-1] != "0" else "1")
        cur = MagicMock()

        with pytest.raises(SignatureMismatchError):
            _verify(cur, _request(signature=altered))
        cur.execute.assert_not_called()

    def test_signature_for_other_payment_rejected(self):
        cur = MagicMock()
        with pytest.raises(SignatureMismatchError):
            _verify(cur, _request(signature=sign(_ORDER, "pay_OTHER")))


class TestSettlement:
    def test_marks_paid_and_confirmed(self):
        cur = MagicMock()
        cur.fetchone.return_value = booking_row()
        cur.rowcount = 1

        result = _verify(cur)

        assert result.already_paid is False
        assert result.booking_id == 42
        assert result.payment_id == _PAYMENT

        sql, params = cur.execute.call_args_list[-1][0]
        assert "payment_status != 'paid'" in sql
        details = json.loads(params[0])
        assert details["orderId"] == _ORDER
        assert details["paymentId"] == _PAYMENT
        assert details["signatureVerified"] is True
        assert details["verifiedAt"].endswith("Z")

    def test_redelivery_is_success_without_write(self):
        cur = MagicMock()
        cur.fetchone.return_value = booking_row(status="confirmed", payment_status="paid")

        result = _verify(cur)

        assert result.already_paid is True
        # only the SELECT
        assert cur.execute.call_count == 1

    def test_double_call_transitions_once(self):
        first = MagicMock()
        first.fetchone.return_value = booking_row(payment_details={"orderId": _ORDER})
        first.rowcount = 1
        second = MagicMock()
        second.fetchone.return_value = booking_row(
            status="confirmed",
            payment_status="paid",
            payment_details={"orderId": _ORDER, "paymentId": _PAYMENT},
        )

        assert _verify(first).already_paid is False
        assert _verify(second).already_paid is True
        assert second.execute.call_count == 1

    def test_concurrent_callback_won_race(self):
        cur = MagicMock()
        cur.fetchone.side_effect = [booking_row(), ("paid",)]
        cur.rowcount = 0

        result = _verify(cur)

        assert result.already_paid is True

    def test_update_lost_without_paid_state(self):
        cur = MagicMock()
        cur.fetchone.side_effect = [booking_row(), ("pending",)]
        cur.rowcount = 0

        with pytest.raises(InternalError) as exc_info:
            _verify(cur)
        assert exc_info.value.client_message == "Internal server error"

    def test_unknown_booking(self):
        cur = MagicMock()
        cur.fetchone.return_value = None

        with pytest.raises(NotFoundError, match="Booking associated with this payment not found"):
            _verify(cur)

    def test_earlier_order_settles_after_a_newer_one(self):
        cur = MagicMock()
        cur.fetchone.return_value = booking_row(payment_details={"orderId": "order_NEWER"})
        cur.rowcount = 1

        result = _verify(cur)

        assert result.already_paid is False
        sql, params = cur.execute.call_args_list[-1][0]
        assert "payment_status = 'paid'" in sql
        assert json.loads(params[0])["orderId"] == _ORDER

    def test_two_checkouts_first_one_paid(self):
        gateway = FakeGateway()
        cur = MagicMock()
        cur.fetchone.return_value = booking_row()
        cur.rowcount = 1
        order_request = OrderRequest(booking_id=42, amount=Decimal("23600"), currency="INR")

        order_ids = []
        for order_id in ("order_FIRST", "order_SECOND"):
            gateway.result = GatewayOrder(
                order_id=order_id, amount=2360000, currency="INR", receipt="rcpt"
            )
            order_ids.append(create_payment_order(cur, order_request, gateway=gateway).order_id)

        cur.reset_mock()
        cur.fetchone.return_value = booking_row(payment_details={"orderId": order_ids[-1]})
        cur.rowcount = 1
        request = VerifyRequest(
            order_id=order_ids[0],
            payment_id=_PAYMENT,
            signature=sign(order_ids[0], _PAYMENT),
            booking_id=42,
        )

        result = _verify(cur, request)

        assert result.already_paid is False
        params = cur.execute.call_args_list[-1][0][1]
        assert json.loads(params[0])["orderId"] == "order_FIRST"
