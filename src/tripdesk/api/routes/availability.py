"""Availability endpoint - capacity, date overlap and price for a package."""

from __future__ import annotations

from fastapi import APIRouter, Query

from tripdesk.domain import validation
from tripdesk.observability.correlation import get_correlation_id
from tripdesk.observability.logging import get_logger
from tripdesk.observability.redaction import safe_log_context

router = APIRouter(tags=["availability"])

logger = get_logger(__name__)


@router.get("/availability")
def get_availability(
    package_id: str | None = Query(None, alias="packageId"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    guests: str | None = Query(None),
) -> dict:
    """Check whether a package can be booked.

    Unavailability (capacity or date conflict) is a 200 with available=false.
    Malformed parameters are a 400; an unknown or inactive package is a 404.
    """
    from tripdesk.domain.availability import check_availability
    from tripdesk.infra.db import txn

    validation.require_fields(
        {
            "packageId": package_id,
            "startDate": start_date,
            "endDate": end_date,
            "guests": guests,
        },
        "Missing required parameters",
    )
    pkg_id = validation.positive_int(package_id, "packageId")
    guest_count = validation.positive_int(guests, "guests")
    start, end = validation.date_range(start_date, end_date)

    with txn() as cur:
        result = check_availability(
            cur,
            package_id=pkg_id,
            start_date=start,
            end_date=end,
            guests=guest_count,
        )

    logger.info(
        "availability checked",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                package_id=pkg_id,
                available=result.available,
                reason=result.reason,
            )
        },
    )

    data: dict = {
        "packageId": pkg_id,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "guests": guest_count,
    }
    if result.pricing is not None:
        data["pricing"] = result.pricing.to_public()
    if result.reason is not None:
        data["reason"] = result.reason

    return {
        "success": True,
        "available": result.available,
        "message": result.message,
        "data": data,
    }
