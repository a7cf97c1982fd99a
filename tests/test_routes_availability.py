"""Tests for GET /availability.

All tests use mocked cursors and do not require a live Postgres instance.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from helpers import package_row
from tripdesk.api.factory import create_app

_PARAMS = {
    "packageId": "5",
    "startDate": "2025-06-01",
    "endDate": "2025-06-05",
    "guests": "2",
}


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(role="public"), raise_server_exceptions=False)


def _get(client: TestClient, cursor: MagicMock, **overrides):
    params = {**_PARAMS, **overrides}
    params = {k: v for k, v in params.items() if v is not None}
    with patch("tripdesk.infra.db.txn") as mock_txn:
        mock_txn.return_value.__enter__.return_value = cursor
        return client.get("/availability", params=params)


class TestAvailabilityEndpoint:
    def test_available(self, client):
        cur = MagicMock()
        cur.fetchone.side_effect = [package_row(base_price=Decimal("25000")), None]

        response = _get(client, cur)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["available"] is True
        assert body["message"] == "The selected package is available for booking"
        assert body["data"] == {
            "packageId": 5,
            "startDate": "2025-06-01",
            "endDate": "2025-06-05",
            "guests": 2,
            "pricing": {"basePrice": 50000, "taxes": 9000, "total": 59000},
        }

    def test_capacity_exceeded_is_200(self, client):
        cur = MagicMock()
        cur.fetchone.side_effect = [package_row(max_people=4)]

        response = _get(client, cur, guests="5")

        assert response.status_code == 200
        body = response.json()
        assert body["available"] is False
        assert body["message"] == "Maximum 4 guests allowed for this package"
        assert body["data"]["reason"] == "capacity_exceeded"
        assert "pricing" not in body["data"]

    def test_date_conflict_is_200(self, client):
        cur = MagicMock()
        cur.fetchone.side_effect = [package_row(), (17,)]

        response = _get(client, cur)

        assert response.status_code == 200
        assert response.json()["available"] is False
        assert response.json()["data"]["reason"] == "date_conflict"

    def test_unknown_package_is_404(self, client):
        cur = MagicMock()
        cur.fetchone.return_value = None

        response = _get(client, cur, packageId="999")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Package with ID 999 not found or is inactive",
        }

    def test_missing_params_is_400(self, client):
        cur = MagicMock()

        response = _get(client, cur, packageId=None, guests=None)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Missing required parameters: packageId, guests"
        assert body["error"]["fields"] == ["packageId", "guests"]
        cur.execute.assert_not_called()

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"packageId": "abc"}, "packageId"),
            ({"guests": "0"}, "guests"),
            ({"startDate": "June 1"}, "startDate"),
        ],
    )
    def test_malformed_params_is_400(self, client, overrides, field):
        response = _get(client, MagicMock(), **overrides)
        assert response.status_code == 400
        assert field in response.json()["message"]

    def test_end_not_after_start_is_400(self, client):
        response = _get(client, MagicMock(), endDate="2025-06-01")
        assert response.status_code == 400
        assert response.json()["message"] == "endDate must be strictly after startDate"
