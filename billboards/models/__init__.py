"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que create_all les détecte.
Import all models here so create_all can detect them.
"""

from billboards.models.period import PeriodColumns, PeriodType
from billboards.models.bi_week import BiWeek
from billboards.models.billboard import Billboard
from billboards.models.rental import Rental, RentalKind, RentalStatus
from billboards.models.proposal import Proposal, ProposalStatus, proposal_billboards
from billboards.models.audit import AuditAction, AuditLog
from billboards.models.reconciliation_lease import ReconciliationLease

__all__ = [
    "PeriodColumns",
    "PeriodType",
    "BiWeek",
    "Billboard",
    "Rental",
    "RentalKind",
    "RentalStatus",
    "Proposal",
    "ProposalStatus",
    "proposal_billboards",
    "AuditAction",
    "AuditLog",
    "ReconciliationLease",
]
