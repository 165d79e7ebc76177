"""Routes Réconciliation / Reconciliation API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from billboards.api.deps import CurrentUser, get_session_factory, require_admin
from billboards.schemas.reconciliation import ReconciliationStatsRead
from billboards.services.reconciler import Reconciler

router = APIRouter()


@router.post("/run", response_model=ReconciliationStatsRead)
async def run_reconciliation(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    admin: CurrentUser = Depends(require_admin),
):
    """Lancer une passe de reconciliation / Run a reconciliation pass now."""
    stats = await Reconciler(session_factory).run_reconciliation()
    return stats.to_dict()
