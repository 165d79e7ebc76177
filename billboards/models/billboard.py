"""Modèle Panneau / Billboard model."""

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billboards.database import Base


class Billboard(Base):
    __tablename__ = "billboards"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(30), nullable=False)
    street_name: Mapped[str | None] = mapped_column(String(200))
    size: Mapped[str | None] = mapped_column(String(30))
    coordinates: Mapped[str | None] = mapped_column(String(60))
    # Maintenance manuelle uniquement, jamais l'occupation /
    # Manual maintenance hold only, never rental occupancy
    available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text)

    # Relations
    rentals: Mapped[list["Rental"]] = relationship(back_populates="billboard", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Billboard {self.code}>"
