"""Routes API / API routes."""

from fastapi import APIRouter

from billboards.api import (
    audit,
    bi_weeks,
    billboards,
    proposals,
    reconciliation,
    rentals,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(bi_weeks.router, prefix="/bi-weeks", tags=["bi-weeks"])
api_router.include_router(billboards.router, prefix="/billboards", tags=["billboards"])
api_router.include_router(rentals.router, prefix="/rentals", tags=["rentals"])
api_router.include_router(proposals.router, prefix="/proposals", tags=["proposals"])
api_router.include_router(reconciliation.router, prefix="/reconciliation", tags=["reconciliation"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
