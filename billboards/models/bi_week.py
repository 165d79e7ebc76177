"""Modèle Bi-semaine / Bi-week slot model."""

from datetime import date

from sqlalchemy import Boolean, Date, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from billboards.database import Base
from billboards.exceptions import ValidationError

MIN_SLOT_DAYS = 12
MAX_SLOT_DAYS = 16


class BiWeek(Base):
    """Créneau fixe de 14 jours / Fixed 14-day calendar slot.

    id = "YYYY-NN", NN pair de 02 a 52 / NN even from 02 to 52.
    end_date est le dernier jour inclus / end_date is the inclusive last day.
    """
    __tablename__ = "bi_weeks"
    __table_args__ = (UniqueConstraint("year", "number"),)

    id: Mapped[str] = mapped_column(String(7), primary_key=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def __repr__(self) -> str:
        return f"<BiWeek {self.id} {self.start_date}..{self.end_date}>"


def check_slot_span(start_date: date, end_date: date) -> None:
    """Invariant persiste / Persisted invariant: 12 <= days <= 16 and end > start."""
    if end_date <= start_date:
        raise ValidationError("Bi-week end date must be after its start date")
    days = (end_date - start_date).days + 1
    if days < MIN_SLOT_DAYS or days > MAX_SLOT_DAYS:
        raise ValidationError(
            f"A bi-week must span roughly 14 days ({MIN_SLOT_DAYS}-{MAX_SLOT_DAYS}); got {days} days"
        )


@event.listens_for(BiWeek, "before_insert")
@event.listens_for(BiWeek, "before_update")
def _validate_slot_span(mapper, connection, target: BiWeek) -> None:
    # Protege contre une corruption manuelle / Guards against manual corruption
    check_slot_span(target.start_date, target.end_date)
