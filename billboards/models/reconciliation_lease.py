"""Modèle Bail de réconciliation / Reconciliation lease model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from billboards.database import Base


class ReconciliationLease(Base):
    """Jeton d'exclusion mutuelle borne dans le temps / Time-boxed mutual-exclusion token.

    Une seule instance reconcilie tant que expires_at n'est pas depasse.
    Only one instance reconciles while expires_at has not passed.
    """
    __tablename__ = "reconciliation_leases"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    holder: Mapped[str] = mapped_column(String(100), nullable=False)
    expires_at: Mapped[str] = mapped_column(String(32), nullable=False)  # ISO 8601 UTC

    def __repr__(self) -> str:
        return f"<ReconciliationLease {self.name} holder={self.holder} until={self.expires_at}>"
