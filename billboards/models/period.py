"""Colonnes Période partagées / Shared period columns (Rental, Proposal)."""

import enum
from datetime import date

from sqlalchemy import JSON, Date, Enum
from sqlalchemy.orm import Mapped, mapped_column


class PeriodType(str, enum.Enum):
    """Type de période / Period type."""
    DISCRETE = "DISCRETE"  # bi-semaines / backed by bi-week slots
    CUSTOM = "CUSTOM"


class PeriodColumns:
    """Mixin : période embarquée / Embedded period mixin.

    start_date/end_date sont toujours renseignees ; slot_ids seulement en DISCRETE.
    start_date/end_date are always materialized; slot_ids only for DISCRETE.
    """

    period_type: Mapped[PeriodType] = mapped_column(Enum(PeriodType), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    slot_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    @property
    def period(self):
        from billboards.services.period_model import Period

        return Period(
            period_type=self.period_type,
            start_date=self.start_date,
            end_date=self.end_date,
            slot_ids=tuple(self.slot_ids or ()),
        )

    def apply_period(self, period) -> None:
        self.period_type = period.period_type
        self.start_date = period.start_date
        self.end_date = period.end_date
        self.slot_ids = list(period.slot_ids)
