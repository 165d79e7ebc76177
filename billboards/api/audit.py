"""Routes Historique / Audit log API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.api.deps import CurrentUser, require_admin
from billboards.database import get_db
from billboards.models.audit import RECONCILIATION_ACTIONS, AuditAction, AuditLog

router = APIRouter()


@router.get("/")
async def list_audit_logs(
    entity_type: str | None = Query(default=None, description="rental, proposal"),
    entity_id: int | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    actor: str | None = Query(default=None, description="user:<id>, reconciler, system"),
    reconciliation_only: bool = Query(default=False),
    limit: int = Query(default=100, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    """Historique des reservations (admin) / Booking history, including reconciler corrections (admin only)."""
    filters = []
    if entity_type:
        filters.append(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        filters.append(AuditLog.entity_id == entity_id)
    if action:
        filters.append(AuditLog.action == action.value)
    if actor:
        filters.append(AuditLog.user == actor)
    if reconciliation_only:
        filters.append(AuditLog.action.in_([a.value for a in RECONCILIATION_ACTIONS]))

    total = await db.scalar(select(func.count(AuditLog.id)).where(*filters)) or 0
    result = await db.execute(
        select(AuditLog).where(*filters).order_by(AuditLog.id.desc()).offset(offset).limit(limit)
    )

    return {
        "total": total,
        "items": [
            {
                "id": log.id,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "action": log.action,
                "changes": log.changes_dict,
                "user": log.user,
                "timestamp": log.timestamp,
            }
            for log in result.scalars().all()
        ],
    }
