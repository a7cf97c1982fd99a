"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from ..routes import availability, bookings, payments

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(availability.router)
router.include_router(bookings.router)
router.include_router(payments.router)
