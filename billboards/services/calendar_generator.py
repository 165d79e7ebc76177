"""
Service Calendrier bi-semaines / Bi-week calendar service.

Genere le catalogue des 26 créneaux d'une annee et le persiste de facon
idempotente (upsert pur, aucune suppression).
Generates a year's catalogue of 26 slots and persists it idempotently
(pure upsert, no deletion).
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import String, cast, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.config import settings
from billboards.exceptions import ConflictError, EngineError, InternalError, NotFoundError, ValidationError
from billboards.models.bi_week import BiWeek, check_slot_span
from billboards.models.proposal import Proposal
from billboards.models.rental import Rental
from billboards.services.period_model import is_slot_id

logger = logging.getLogger(__name__)

SLOTS_PER_YEAR = 26
SLOT_LENGTH_DAYS = 14

# Champs modifiables sur un créneau reference / Fields editable on a referenced slot
_ALWAYS_EDITABLE = {"description", "active"}


@dataclass
class CalendarSummary:
    year: int
    created: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0

    @property
    def message(self) -> str:
        return f"Calendar {self.year}: {self.created} created, {self.updated} updated, {self.skipped} skipped"


class CalendarGenerator:
    """Generation et maintenance du catalogue / Catalogue generation and maintenance."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def generate(year: int, custom_start_date: date | None = None) -> list[BiWeek]:
        """26 créneaux contigus de 14 jours / 26 contiguous 14-day slots.

        Le créneau i commence a custom_start_date (ou 1er janvier) + i*14 jours,
        finit 13 jours plus tard ; number = (i+1)*2 ; id = "{year}-{number:02}".
        """
        origin = custom_start_date or date(year, 1, 1)
        slots = []
        for i in range(SLOTS_PER_YEAR):
            start = origin + timedelta(days=i * SLOT_LENGTH_DAYS)
            number = (i + 1) * 2
            slots.append(BiWeek(
                id=f"{year}-{number:02d}",
                year=year,
                number=number,
                start_date=start,
                end_date=start + timedelta(days=SLOT_LENGTH_DAYS - 1),
                description=f"Bi-week {number} of {year}",
                active=True,
            ))
        return slots

    def check_year(self, year: int) -> None:
        if not settings.CALENDAR_MIN_YEAR <= year <= settings.CALENDAR_MAX_YEAR:
            raise ValidationError(
                f"Invalid year {year}. Use a year between "
                f"{settings.CALENDAR_MIN_YEAR} and {settings.CALENDAR_MAX_YEAR}."
            )

    async def generate_calendar(
        self, year: int, custom_start_date: date | None = None, overwrite: bool = False
    ) -> CalendarSummary:
        """Generer et persister le calendrier / Generate and persist the calendar."""
        self.check_year(year)
        logger.info(
            "Generating calendar %s (overwrite=%s, custom_start=%s)", year, overwrite, custom_start_date
        )
        slots = self.generate(year, custom_start_date)
        summary = await self.upsert_calendar(year, slots, overwrite)
        logger.info(summary.message)
        return summary

    async def upsert_calendar(self, year: int, slots: list[BiWeek], overwrite: bool = False) -> CalendarSummary:
        """Upsert pur / Pure upsert: skip or update existing ids, insert the others.

        Un créneau deja reference dont les dates changeraient est laisse intact
        et compte comme ignore. A referenced slot whose dates would change is
        left untouched and counted as skipped.
        """
        summary = CalendarSummary(year=year, total=len(slots))
        try:
            ids = [s.id for s in slots]
            result = await self.db.execute(select(BiWeek).where(BiWeek.id.in_(ids)))
            existing = {s.id: s for s in result.scalars().all()}

            for slot in slots:
                current = existing.get(slot.id)
                if current is None:
                    self.db.add(slot)
                    summary.created += 1
                    continue
                if not overwrite:
                    summary.skipped += 1
                    logger.debug("Bi-week %s already exists, skipping", slot.id)
                    continue
                dates_change = (current.start_date, current.end_date) != (slot.start_date, slot.end_date)
                if dates_change and await self.is_referenced(slot.id):
                    summary.skipped += 1
                    logger.warning("Bi-week %s is referenced by bookings, dates left unchanged", slot.id)
                    continue
                current.year = slot.year
                current.number = slot.number
                current.start_date = slot.start_date
                current.end_date = slot.end_date
                current.description = slot.description
                current.active = slot.active
                summary.updated += 1

            await self.db.flush()
            await self.db.commit()
        except EngineError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Calendar upsert failed for %s: %s", year, exc, exc_info=True)
            raise InternalError(f"Calendar upsert failed: {exc}") from exc
        return summary

    async def find_containing(self, day: date) -> BiWeek | None:
        """Créneau actif contenant la date / Active slot whose [start, end] contains the date."""
        result = await self.db.execute(
            select(BiWeek).where(
                BiWeek.start_date <= day,
                BiWeek.end_date >= day,
                BiWeek.active.is_(True),
            ).order_by(BiWeek.start_date).limit(1)
        )
        return result.scalar_one_or_none()

    async def slots_intersecting(self, start: date, end: date) -> list[BiWeek]:
        """Créneaux actifs intersectant [start, end] / Active slots intersecting [start, end]."""
        result = await self.db.execute(
            select(BiWeek).where(
                BiWeek.start_date <= end,
                BiWeek.end_date >= start,
                BiWeek.active.is_(True),
            ).order_by(BiWeek.start_date)
        )
        return list(result.scalars().all())

    async def list_slots(self, year: int | None = None, active: bool | None = None) -> list[BiWeek]:
        query = select(BiWeek).order_by(BiWeek.year, BiWeek.number)
        if year is not None:
            query = query.where(BiWeek.year == year)
        if active is not None:
            query = query.where(BiWeek.active.is_(active))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def available_years(self) -> list[int]:
        result = await self.db.execute(select(BiWeek.year).distinct().order_by(BiWeek.year))
        return list(result.scalars().all())

    async def get_slot(self, slot_id: str) -> BiWeek:
        slot = await self.db.get(BiWeek, slot_id)
        if not slot:
            raise NotFoundError(f"Bi-week {slot_id} not found", {"missing_ids": [slot_id]})
        return slot

    async def is_referenced(self, slot_id: str) -> bool:
        """Créneau utilise par une location ou proposition / Slot used by a rental or proposal."""
        needle = f'%"{slot_id}"%'
        for model in (Rental, Proposal):
            count = await self.db.scalar(
                select(func.count(model.id)).where(cast(model.slot_ids, String).like(needle))
            )
            if count:
                return True
        return False

    async def create_slot(self, data: dict) -> BiWeek:
        """Creer un créneau unique / Create a single slot."""
        slot_id = data["id"]
        year, number = data["year"], data["number"]
        self.check_year(year)
        errors = []
        if not is_slot_id(slot_id):
            errors.append(f"Invalid slot id: {slot_id}. Use format YYYY-NN (e.g. 2025-02)")
        if number % 2 or not 2 <= number <= 52:
            errors.append("Slot number must be even, between 02 and 52")
        if slot_id != f"{year}-{number:02d}":
            errors.append(f"Slot id {slot_id} does not match year {year} and number {number}")
        if errors:
            raise ValidationError("Invalid bi-week", errors)
        check_slot_span(data["start_date"], data["end_date"])

        if await self.db.get(BiWeek, slot_id):
            raise ConflictError(f"Bi-week {slot_id} already exists")
        slot = BiWeek(**data)
        self.db.add(slot)
        await self.db.flush()
        logger.info("Bi-week %s created", slot_id)
        return slot

    async def update_slot(self, slot_id: str, changes: dict) -> BiWeek:
        """Modifier un créneau / Update a slot. Dates figees une fois referencees."""
        slot = await self.get_slot(slot_id)
        date_changes = {
            k: v for k, v in changes.items()
            if k not in _ALWAYS_EDITABLE and getattr(slot, k) != v
        }
        if date_changes and await self.is_referenced(slot_id):
            raise ConflictError(
                f"Bi-week {slot_id} is referenced by bookings; only description and active can change"
            )
        for key, value in changes.items():
            setattr(slot, key, value)
        check_slot_span(slot.start_date, slot.end_date)
        await self.db.flush()
        logger.info("Bi-week %s updated: %s", slot_id, sorted(changes))
        return slot

    async def delete_slot(self, slot_id: str) -> None:
        slot = await self.get_slot(slot_id)
        if await self.is_referenced(slot_id):
            raise ConflictError(f"Bi-week {slot_id} is referenced by bookings; deactivate it instead")
        await self.db.delete(slot)
        await self.db.flush()
        logger.info("Bi-week %s deleted", slot_id)

