"""Routes Bi-semaines / Bi-week calendar API routes."""

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.api.deps import CurrentUser, get_current_user, require_admin
from billboards.database import get_db
from billboards.schemas.bi_week import (
    BiWeekCreate,
    BiWeekRead,
    BiWeekUpdate,
    CalendarGenerateRequest,
    CalendarSummaryRead,
)
from billboards.schemas.period import AlignmentRead, AlignmentRequest
from billboards.services.calendar_generator import CalendarGenerator
from billboards.services.period_resolver import PeriodResolver

router = APIRouter()


@router.get("/calendar", response_model=list[BiWeekRead])
async def get_calendar(
    year: int | None = Query(default=None),
    active: bool | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Lister les bi-semaines / List bi-week slots (filter by year, active)."""
    return await CalendarGenerator(db).list_slots(year=year, active=active)


@router.get("/years", response_model=list[int])
async def list_years(db: AsyncSession = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    """Annees presentes dans le catalogue / Years present in the catalogue."""
    return await CalendarGenerator(db).available_years()


@router.get("/find-by-date", response_model=BiWeekRead)
async def find_by_date(
    day: date = Query(alias="date"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Bi-semaine contenant une date / Bi-week containing a date."""
    slot = await PeriodResolver(db).find_slot_by_date(day)
    if not slot:
        raise HTTPException(status_code=404, detail=f"No bi-week contains {day.isoformat()}")
    return slot


@router.post("/validate", response_model=AlignmentRead)
async def validate_alignment(
    data: AlignmentRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Conseil d'alignement, non bloquant / Non-blocking alignment advisory."""
    advice = await PeriodResolver(db).check_alignment(data.start_date, data.end_date)
    return asdict(advice)


@router.post("/generate", response_model=CalendarSummaryRead)
async def generate_calendar(
    data: CalendarGenerateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    """Generer le calendrier d'une annee / Generate a year's calendar (idempotent)."""
    summary = await CalendarGenerator(db).generate_calendar(data.year, data.start_date, data.overwrite)
    return {**asdict(summary), "message": summary.message}


@router.get("/{slot_id}", response_model=BiWeekRead)
async def get_bi_week(
    slot_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Obtenir une bi-semaine par ID / Get a bi-week by ID."""
    return await CalendarGenerator(db).get_slot(slot_id)


@router.post("/", response_model=BiWeekRead, status_code=201)
async def create_bi_week(
    data: BiWeekCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    """Créer une bi-semaine / Create a bi-week."""
    slot = await CalendarGenerator(db).create_slot(data.model_dump())
    await db.refresh(slot)
    return slot


@router.put("/{slot_id}", response_model=BiWeekRead)
async def update_bi_week(
    slot_id: str,
    data: BiWeekUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    """Modifier une bi-semaine / Update a bi-week. Dates figees une fois referencee."""
    slot = await CalendarGenerator(db).update_slot(slot_id, data.model_dump(exclude_unset=True))
    await db.refresh(slot)
    return slot


@router.delete("/{slot_id}", status_code=204)
async def delete_bi_week(
    slot_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    """Supprimer une bi-semaine non referencee / Delete an unreferenced bi-week."""
    await CalendarGenerator(db).delete_slot(slot_id)
