"""Modèle Proposition / Proposal model (reservation groupee multi-panneaux)."""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billboards.database import Base
from billboards.models.period import PeriodColumns


class ProposalStatus(str, enum.Enum):
    """Statut de la proposition / Proposal status."""
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


# Table d'association Proposition <-> Panneau / Proposal <-> Billboard link table
proposal_billboards = Table(
    "proposal_billboards",
    Base.metadata,
    Column("proposal_id", Integer, ForeignKey("proposals.id", ondelete="CASCADE"), primary_key=True),
    Column("billboard_id", Integer, ForeignKey("billboards.id", ondelete="CASCADE"), primary_key=True),
)


class Proposal(PeriodColumns, Base):
    __tablename__ = "proposals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    client_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[ProposalStatus] = mapped_column(
        Enum(ProposalStatus), default=ProposalStatus.IN_PROGRESS, index=True
    )
    description: Mapped[str | None] = mapped_column(Text)

    # Relations
    billboards: Mapped[list["Billboard"]] = relationship(secondary=proposal_billboards, lazy="selectin")

    @property
    def billboard_ids(self) -> list[int]:
        return sorted(b.id for b in self.billboards)

    def __repr__(self) -> str:
        return f"<Proposal {self.code}>"
