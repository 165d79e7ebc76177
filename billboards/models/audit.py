"""Modèle Historique / Audit log model (locations, propositions, reconciliation)."""

import enum
import json
from datetime import datetime, timezone

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billboards.database import Base


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    # Ecritures du reconciliateur / Reconciler writes
    RECONCILE_UPDATE = "RECONCILE_UPDATE"
    RECONCILE_DELETE = "RECONCILE_DELETE"
    ORPHAN_DELETE = "ORPHAN_DELETE"


RECONCILIATION_ACTIONS = (
    AuditAction.RECONCILE_UPDATE,
    AuditAction.RECONCILE_DELETE,
    AuditAction.ORPHAN_DELETE,
)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # rental, proposal
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    changes: Mapped[str | None] = mapped_column(Text)  # JSON
    user: Mapped[str | None] = mapped_column(String(100))  # user:<id>, reconciler, system
    timestamp: Mapped[str] = mapped_column(String(32), nullable=False)  # ISO 8601

    @classmethod
    def entry(cls, entity_type: str, entity_id: int, action: AuditAction, changes: dict, actor: str) -> "AuditLog":
        return cls(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            changes=json.dumps(changes, default=str),
            user=actor,
            timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )

    @property
    def changes_dict(self) -> dict:
        return json.loads(self.changes) if self.changes else {}

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id} by {self.user}>"
