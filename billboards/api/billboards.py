"""Routes Panneaux / Billboard API routes."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.api.deps import get_company_id
from billboards.database import get_db
from billboards.models.billboard import Billboard
from billboards.schemas.billboard import BillboardCreate, BillboardRead, MaintenanceUpdate
from billboards.services.reservation_service import ReservationService

router = APIRouter()


async def billboard_views(db: AsyncSession, company_id: int, billboards: list[Billboard]) -> list[BillboardRead]:
    """Ajouter l'occupation du jour / Attach today's live occupancy."""
    occupied = await ReservationService(db).occupied_billboard_ids(company_id, date.today())
    views = []
    for billboard in billboards:
        view = BillboardRead.model_validate(billboard)
        view.occupied_now = billboard.id in occupied
        view.available_now = billboard.available and not view.occupied_now
        views.append(view)
    return views


async def _get_owned(db: AsyncSession, billboard_id: int, company_id: int) -> Billboard:
    result = await db.execute(
        select(Billboard).where(Billboard.id == billboard_id, Billboard.company_id == company_id)
    )
    billboard = result.scalar_one_or_none()
    if not billboard:
        raise HTTPException(status_code=404, detail="Billboard not found")
    return billboard


@router.get("/", response_model=list[BillboardRead])
async def list_billboards(
    available: bool | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    company_id: int = Depends(get_company_id),
):
    """Lister les panneaux de l'entreprise / List the company's billboards."""
    query = select(Billboard).where(Billboard.company_id == company_id).order_by(Billboard.code)
    if available is not None:
        query = query.where(Billboard.available.is_(available))
    result = await db.execute(query)
    return await billboard_views(db, company_id, list(result.scalars().all()))


@router.get("/{billboard_id}", response_model=BillboardRead)
async def get_billboard(
    billboard_id: int,
    db: AsyncSession = Depends(get_db),
    company_id: int = Depends(get_company_id),
):
    """Obtenir un panneau / Get a billboard, with live occupancy."""
    billboard = await _get_owned(db, billboard_id, company_id)
    return (await billboard_views(db, company_id, [billboard]))[0]


@router.post("/", response_model=BillboardRead, status_code=201)
async def create_billboard(
    data: BillboardCreate,
    db: AsyncSession = Depends(get_db),
    company_id: int = Depends(get_company_id),
):
    """Créer un panneau / Create a billboard."""
    billboard = Billboard(**data.model_dump(), company_id=company_id)
    db.add(billboard)
    await db.flush()
    await db.refresh(billboard)
    return (await billboard_views(db, company_id, [billboard]))[0]


@router.put("/{billboard_id}/maintenance", response_model=BillboardRead)
async def set_maintenance(
    billboard_id: int,
    data: MaintenanceUpdate,
    db: AsyncSession = Depends(get_db),
    company_id: int = Depends(get_company_id),
):
    """Blocage manuel (maintenance) / Manual maintenance hold, independent of rentals."""
    billboard = await _get_owned(db, billboard_id, company_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(billboard, key, value)
    await db.flush()
    await db.refresh(billboard)
    return (await billboard_views(db, company_id, [billboard]))[0]
