"""
Résolution de période / Period resolver.

Transforme une demande de reservation heterogene (ids de créneaux ou plage de
dates brute) en Period canonique, avec controle de continuite des créneaux et
conseil d'alignement non bloquant pour les periodes CUSTOM.
Turns heterogeneous booking input (slot ids or raw date range) into a canonical
Period, with slot continuity checks and a non-blocking alignment advisory for
CUSTOM periods.

Erreurs / Errors:
    NotFoundError   id de créneau inconnu / unknown slot id
    ValidationError format, ecart, dates inversees / malformed id, gap, inverted dates
    InternalError   toute faute de stockage / any storage fault
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.exceptions import EngineError, InternalError, NotFoundError, ValidationError
from billboards.models.bi_week import BiWeek
from billboards.models.period import PeriodType
from billboards.services.calendar_generator import CalendarGenerator
from billboards.services.period_model import (
    PartialPeriod,
    Period,
    format_date,
    normalize_legacy_input,
    validate,
    validate_slot_ids,
)

logger = logging.getLogger(__name__)


@dataclass
class AlignmentSuggestion:
    start_date: date
    end_date: date
    slot_ids: list[str]
    message: str


@dataclass
class AlignmentAdvice:
    """Conseil d'alignement, purement informatif / Alignment advisory, informational only."""
    aligned: bool
    message: str
    slot_ids: list[str] = field(default_factory=list)
    suggestion: AlignmentSuggestion | None = None


@dataclass
class Resolution:
    period: Period
    alignment: AlignmentAdvice | None = None


class PeriodResolver:
    """Resolution de l'entree client en Period / Client input to Period resolution."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.calendar = CalendarGenerator(db)

    async def resolve(self, raw) -> Period:
        return (await self.resolve_detailed(raw)).period

    async def resolve_detailed(self, raw) -> Resolution:
        normalized = normalize_legacy_input(raw)
        logger.debug("Resolving period input: %s", normalized)
        try:
            if normalized.period_type == PeriodType.DISCRETE:
                resolution = Resolution(await self._resolve_discrete(normalized))
            elif normalized.period_type == PeriodType.CUSTOM:
                resolution = await self._resolve_custom(normalized)
            else:
                self._raise_invalid(validate(normalized).errors)
        except EngineError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Storage fault while resolving period: %s", exc, exc_info=True)
            raise InternalError(f"Period resolution failed: {exc}") from exc

        # Verification finale / Final gate
        final = validate(resolution.period)
        if not final.valid:
            self._raise_invalid(final.errors)

        period = resolution.period
        logger.info(
            "Period resolved: %s %s..%s %s",
            period.period_type.value, period.start_date, period.end_date, list(period.slot_ids),
        )
        return resolution

    async def _resolve_discrete(self, normalized: PartialPeriod) -> Period:
        slot_ids = list(normalized.slot_ids or [])
        if not slot_ids:
            self._raise_invalid(["slot_ids is required for DISCRETE periods"])
        format_errors = validate_slot_ids(slot_ids)
        if format_errors:
            self._raise_invalid(format_errors)
        duplicates = sorted({s for s in slot_ids if slot_ids.count(s) > 1})
        if duplicates:
            self._raise_invalid([f"Duplicate slot ids: {', '.join(duplicates)}"])

        result = await self.db.execute(
            select(BiWeek).where(BiWeek.id.in_(slot_ids)).order_by(BiWeek.start_date)
        )
        slots = list(result.scalars().all())

        found = {s.id for s in slots}
        missing = [s for s in slot_ids if s not in found]
        if missing:
            raise NotFoundError(f"Bi-weeks not found: {', '.join(missing)}", {"missing_ids": missing})

        inactive = [s.id for s in slots if not s.active]
        if inactive:
            self._raise_invalid([f"Bi-week {s} is inactive" for s in inactive])

        self.check_continuity(slots)

        return Period(
            period_type=PeriodType.DISCRETE,
            start_date=slots[0].start_date,
            end_date=slots[-1].end_date,
            slot_ids=tuple(s.id for s in slots),
        )

    @staticmethod
    def check_continuity(slots: list[BiWeek]) -> None:
        """Pas d'ecart entre créneaux / No gap between slots (sorted by start_date).

        slot[i].end_date + 1 jour doit egaler slot[i+1].start_date ; le premier
        ecart rencontre est signale avec sa position et sa taille.
        """
        for current, following in zip(slots, slots[1:]):
            expected = current.end_date + timedelta(days=1)
            if following.start_date == expected:
                continue
            gap_days = (following.start_date - expected).days
            kind = "gap" if gap_days > 0 else "overlap"
            message = (
                f"Bi-weeks are not contiguous: {current.id} ends {current.end_date.isoformat()} "
                f"but {following.id} starts {following.start_date.isoformat()} "
                f"(expected start {expected.isoformat()}, {kind} of {abs(gap_days)} days)"
            )
            raise ValidationError(message, details={
                "after": current.id,
                "before": following.id,
                "expected_start": expected.isoformat(),
                "actual_start": following.start_date.isoformat(),
                "gap_days": gap_days,
            })

    async def _resolve_custom(self, normalized: PartialPeriod) -> Resolution:
        result = validate(normalized)
        if not result.valid:
            self._raise_invalid(result.errors)

        period = Period(PeriodType.CUSTOM, normalized.start_date, normalized.end_date)
        alignment = await self.check_alignment(period.start_date, period.end_date)
        if not alignment.aligned:
            # Non bloquant / Never blocks the request
            logger.warning(
                "Custom period %s..%s not aligned with bi-weeks: %s",
                period.start_date, period.end_date, alignment.message,
            )
        return Resolution(period, alignment)

    async def check_alignment(self, start: date, end: date) -> AlignmentAdvice:
        """Alignement sur les limites des créneaux / Alignment with slot boundaries."""
        if end <= start:
            self._raise_invalid(["start_date must be before end_date"])
        try:
            slots = await self.calendar.slots_intersecting(start, end)
        except SQLAlchemyError as exc:
            logger.error("Storage fault during alignment check: %s", exc, exc_info=True)
            raise InternalError(f"Alignment check failed: {exc}") from exc

        if not slots:
            return AlignmentAdvice(aligned=False, message="No bi-week found for this period")

        first, last = slots[0], slots[-1]
        slot_ids = [s.id for s in slots]
        contiguous = all(
            a.end_date + timedelta(days=1) == b.start_date for a, b in zip(slots, slots[1:])
        )
        if contiguous and start == first.start_date and end == last.end_date:
            return AlignmentAdvice(
                aligned=True,
                message=f"Period aligned with {len(slots)} bi-week(s)",
                slot_ids=slot_ids,
            )

        return AlignmentAdvice(
            aligned=False,
            message="Period is not aligned with bi-week boundaries",
            slot_ids=slot_ids,
            suggestion=AlignmentSuggestion(
                start_date=first.start_date,
                end_date=last.end_date,
                slot_ids=slot_ids,
                message=f"Suggestion: {format_date(first.start_date)} to {format_date(last.end_date)}",
            ),
        )

    async def find_slot_by_date(self, day: date) -> BiWeek | None:
        try:
            return await self.calendar.find_containing(day)
        except SQLAlchemyError as exc:
            logger.error("Storage fault during slot lookup: %s", exc, exc_info=True)
            raise InternalError(f"Slot lookup failed: {exc}") from exc

    @staticmethod
    def _raise_invalid(errors: list[str]):
        raise ValidationError(f"Invalid period: {', '.join(errors)}", errors)
