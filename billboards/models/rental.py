"""Modèle Location / Rental model."""

import enum
from datetime import date, timedelta

from sqlalchemy import Date, Enum, ForeignKey, Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billboards.database import Base
from billboards.models.period import PeriodColumns, PeriodType


class RentalKind(str, enum.Enum):
    """Origine de la location / Rental origin."""
    MANUAL = "MANUAL"
    FROM_PROPOSAL = "FROM_PROPOSAL"


class RentalStatus(str, enum.Enum):
    """Statut de la location / Rental status."""
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


class Rental(PeriodColumns, Base):
    """1 location = 1 panneau sur 1 période / 1 rental = 1 billboard for 1 period."""
    __tablename__ = "rentals"
    __table_args__ = (
        Index("ix_rentals_billboard_period", "billboard_id", "start_date", "end_exclusive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    billboard_id: Mapped[int] = mapped_column(ForeignKey("billboards.id"), nullable=False, index=True)
    client_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    proposal_code: Mapped[str | None] = mapped_column(String(30), index=True)
    kind: Mapped[RentalKind] = mapped_column(Enum(RentalKind), default=RentalKind.MANUAL, index=True)
    status: Mapped[RentalStatus] = mapped_column(Enum(RentalStatus), default=RentalStatus.ACTIVE, index=True)
    # Fin semi-ouverte derivee, utilisee par tous les tests de chevauchement
    # Derived half-open end, used by every overlap comparison
    end_exclusive: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(32))  # ISO 8601

    # Relations
    billboard: Mapped["Billboard"] = relationship(back_populates="rentals")

    def __repr__(self) -> str:
        return f"<Rental {self.id} billboard={self.billboard_id} {self.start_date}..{self.end_date}>"


@event.listens_for(Rental, "before_insert")
@event.listens_for(Rental, "before_update")
def _sync_end_exclusive(mapper, connection, target: Rental) -> None:
    # Un créneau DISCRETE couvre son dernier jour / A DISCRETE slot covers its last day
    if target.period_type == PeriodType.DISCRETE:
        target.end_exclusive = target.end_date + timedelta(days=1)
    else:
        target.end_exclusive = target.end_date
