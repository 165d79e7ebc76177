"""
Modèle de valeur Période / Period value model.

Forme canonique d'une période de réservation, validation et normalisation
des entrees heritees. Aucune I/O.
Canonical booking period shape, validation and legacy input normalization. No I/O.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from billboards.models.period import PeriodType

SLOT_ID_PATTERN = re.compile(r"^\d{4}-\d{2}$")

# Valeurs heritees acceptees pour le type / Accepted legacy spellings of the type
_PERIOD_TYPE_ALIASES = {
    "DISCRETE": PeriodType.DISCRETE,
    "BI-WEEK": PeriodType.DISCRETE,
    "BI_WEEK": PeriodType.DISCRETE,
    "BIWEEK": PeriodType.DISCRETE,
    "CUSTOM": PeriodType.CUSTOM,
}


def periods_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """Chevauchement semi-ouvert / Half-open overlap: touching boundaries do not overlap."""
    return start1 < end2 and start2 < end1


@dataclass(frozen=True)
class Period:
    period_type: PeriodType
    start_date: date
    end_date: date
    slot_ids: tuple[str, ...] = ()

    @property
    def duration_days(self) -> int:
        """Nombre de jours, dernier jour inclus / Day count, last day included."""
        return (self.end_date - self.start_date).days + 1

    @property
    def end_exclusive(self) -> date:
        """Borne de fin semi-ouverte / Half-open end bound.

        La fin d'un créneau est son dernier jour réservé ; une fin CUSTOM est deja exclusive.
        A slot end is its last booked day; a CUSTOM end is already exclusive.
        """
        if self.period_type == PeriodType.DISCRETE:
            return self.end_date + timedelta(days=1)
        return self.end_date

    def overlaps(self, other: "Period") -> bool:
        return periods_overlap(self.start_date, self.end_exclusive, other.start_date, other.end_exclusive)

    def same_interval(self, other: "Period") -> bool:
        return self.start_date == other.start_date and self.end_date == other.end_date

    def to_legacy_dict(self) -> dict:
        """Vue heritee a plat / Flat legacy view (serialization boundary only)."""
        return {
            "data_inicio": self.start_date,
            "data_fim": self.end_date,
            "bi_week_ids": list(self.slot_ids),
        }


@dataclass
class PartialPeriod:
    """Période normalisee, dates DISCRETE pas encore resolues / Normalized, not yet resolved."""
    period_type: PeriodType | None = None
    start_date: date | None = None
    end_date: date | None = None
    slot_ids: list[str] | None = None
    invalid_fields: list[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def parse_date(value) -> date:
    """Convertir une entree en date / Coerce input to a calendar date.

    Accepte date, datetime, "YYYY-MM-DD" et ISO 8601 complet ("2025-01-01T00:00:00Z").
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) >= 10:
            try:
                return date.fromisoformat(text[:10])
            except ValueError:
                pass
    raise ValueError(f"Invalid date: {value!r}")


def is_slot_id(value) -> bool:
    return isinstance(value, str) and bool(SLOT_ID_PATTERN.match(value))


def validate_slot_ids(slot_ids) -> list[str]:
    """Erreurs de format des ids de créneaux / Slot id format errors."""
    return [
        f"Invalid slot id: {slot_id}. Use format YYYY-NN (e.g. 2025-02)"
        for slot_id in slot_ids
        if not is_slot_id(slot_id)
    ]


def _first(raw: Mapping, *keys):
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_legacy_input(raw) -> PartialPeriod:
    """Normaliser l'entree moderne ou heritee / Map modern or legacy input onto the canonical shape.

    Formes acceptees / Accepted shapes:
      - moderne : period_type/periodType + start_date/startDate + end_date/endDate + slot_ids/slotIds
      - heritee : liste d'ids seule, bi_week_ids, ou paire data_inicio/data_fim
    Les dates des créneaux ne sont pas resolues ici / Slot dates are not resolved here.
    """
    if raw is None:
        return PartialPeriod()
    if isinstance(raw, Period):
        return PartialPeriod(raw.period_type, raw.start_date, raw.end_date, list(raw.slot_ids))
    if isinstance(raw, (list, tuple)):
        return PartialPeriod(period_type=PeriodType.DISCRETE, slot_ids=[str(s) for s in raw])

    normalized = PartialPeriod()
    raw_type = _first(raw, "period_type", "periodType")
    slot_ids = _first(raw, "slot_ids", "slotIds", "bi_week_ids", "biWeekIds")
    raw_start = _first(raw, "start_date", "startDate", "data_inicio")
    raw_end = _first(raw, "end_date", "endDate", "data_fim")

    if isinstance(slot_ids, str):
        slot_ids = [slot_ids]

    if raw_type is not None:
        key = raw_type.value if isinstance(raw_type, PeriodType) else str(raw_type).strip().upper()
        normalized.period_type = _PERIOD_TYPE_ALIASES.get(key)
        if normalized.period_type is None:
            normalized.invalid_fields.append("period_type")
    elif slot_ids:
        normalized.period_type = PeriodType.DISCRETE
    elif raw_start is not None and raw_end is not None:
        normalized.period_type = PeriodType.CUSTOM

    if slot_ids:
        normalized.slot_ids = list(slot_ids)

    for name, value in (("start_date", raw_start), ("end_date", raw_end)):
        if value is None:
            continue
        try:
            setattr(normalized, name, parse_date(value))
        except ValueError:
            normalized.invalid_fields.append(name)

    return normalized


def validate(period: Period | PartialPeriod) -> ValidationResult:
    """Valider une période / Validate a period. Ne leve pas : renvoie les erreurs."""
    errors: list[str] = []
    invalid = getattr(period, "invalid_fields", [])

    if "period_type" in invalid or period.period_type is None:
        errors.append("Invalid period type. Use 'DISCRETE' or 'CUSTOM'")

    for name in ("start_date", "end_date"):
        if name in invalid:
            errors.append(f"{name} is not a valid date")
        elif getattr(period, name) is None:
            errors.append(f"{name} is required")

    if period.start_date is not None and period.end_date is not None:
        if period.start_date >= period.end_date:
            errors.append("start_date must be before end_date")

    slot_ids = list(period.slot_ids or [])
    if period.period_type == PeriodType.DISCRETE:
        if not slot_ids:
            errors.append("slot_ids is required for DISCRETE periods")
        else:
            errors.extend(validate_slot_ids(slot_ids))
    elif period.period_type == PeriodType.CUSTOM and slot_ids:
        errors.append("slot_ids must not be provided for CUSTOM periods")

    return ValidationResult(errors)


def format_period(period: Period | None) -> str:
    """Libelle lisible / Human-readable label."""
    if period is None:
        return "Undefined period"
    if period.period_type == PeriodType.DISCRETE:
        return f"Bi-weekly: {', '.join(period.slot_ids) or 'N/A'}"
    return f"Custom: {format_date(period.start_date)} - {format_date(period.end_date)}"


def format_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "N/A"
