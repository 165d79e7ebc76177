"""Routes Locations / Rental API routes."""

from dataclasses import asdict
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.api.billboards import billboard_views
from billboards.api.deps import CurrentUser, get_current_user
from billboards.config import settings
from billboards.database import get_db
from billboards.models.billboard import Billboard
from billboards.rate_limit import limiter
from billboards.schemas.billboard import BillboardRead
from billboards.schemas.period import PeriodInput, ResolutionRead
from billboards.schemas.rental import RentalCreate, RentalRead
from billboards.services.calendar_generator import CalendarGenerator
from billboards.services.period_model import Period, format_period
from billboards.services.period_resolver import PeriodResolver
from billboards.services.reservation_service import ReservationService

router = APIRouter()


def period_view(period: Period) -> dict:
    return {
        "period_type": period.period_type.value,
        "start_date": period.start_date,
        "end_date": period.end_date,
        "slot_ids": list(period.slot_ids),
        "duration_days": period.duration_days,
        "label": format_period(period),
    }


@router.post("/", response_model=RentalRead, status_code=201)
@limiter.limit(settings.RATE_LIMIT_BOOKING)
async def create_rental(
    request: Request,
    data: RentalCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Reserver un panneau / Book a billboard (409 on overlap)."""
    service = ReservationService(db, actor=user.actor)
    return await service.create_rental(
        data.billboard_id, data.client_id, user.company_id, data.raw_period(), notes=data.notes
    )


@router.delete("/{rental_id}", status_code=204)
async def cancel_rental(
    rental_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Annuler une location / Cancel a rental."""
    await ReservationService(db, actor=user.actor).cancel_rental(rental_id, user.company_id)


@router.post("/resolve-period", response_model=ResolutionRead)
async def resolve_period(
    data: PeriodInput,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Resoudre une periode sans reserver / Resolve a period without booking."""
    resolution = await PeriodResolver(db).resolve_detailed(data.raw_period())
    return {
        "period": period_view(resolution.period),
        "alignment": asdict(resolution.alignment) if resolution.alignment else None,
    }


@router.get("/billboard/{billboard_id}", response_model=list[RentalRead])
async def list_billboard_rentals(
    billboard_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Locations d'un panneau / Rentals of a billboard."""
    owned = await db.scalar(
        select(Billboard.id).where(Billboard.id == billboard_id, Billboard.company_id == user.company_id)
    )
    if owned is None:
        raise HTTPException(status_code=404, detail="Billboard not found")
    return await ReservationService(db).rentals_for_billboard(billboard_id, user.company_id)


@router.get("/bi-week/{slot_id}", response_model=list[RentalRead])
async def list_slot_rentals(
    slot_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Locations chevauchant une bi-semaine / Rentals overlapping a bi-week."""
    slot = await CalendarGenerator(db).get_slot(slot_id)
    return await ReservationService(db).rentals_overlapping(
        user.company_id, slot.start_date, slot.end_date + timedelta(days=1)
    )


@router.get("/bi-week/{slot_id}/available-billboards", response_model=list[BillboardRead])
async def list_slot_available_billboards(
    slot_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Panneaux libres sur une bi-semaine / Billboards free during a bi-week."""
    slot = await CalendarGenerator(db).get_slot(slot_id)
    billboards = await ReservationService(db).available_billboards(
        user.company_id, slot.start_date, slot.end_date + timedelta(days=1)
    )
    return await billboard_views(db, user.company_id, billboards)
