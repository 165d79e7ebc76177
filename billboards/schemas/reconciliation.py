"""Schémas Réconciliation / Reconciliation schemas."""

from pydantic import BaseModel


class ReconciliationStatsRead(BaseModel):
    proposals_scanned: int
    proposals_touched: int
    rentals_created: int
    rentals_corrected: int
    rentals_removed: int
    orphans_removed: int
    conflicts: int
    failures: int
    skipped: bool
    corrective_actions: int
    errors: list[str] = []
