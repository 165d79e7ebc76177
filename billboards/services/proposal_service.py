"""
Service Propositions / Proposal service.

Une proposition reserve plusieurs panneaux sur une meme periode. La creation
reserve tous les panneaux (FROM_PROPOSAL) en tout ou rien ; une modification
est suivie d'une reconciliation immediate de cette proposition.
A proposal books several billboards for one period. Creation books every
billboard (FROM_PROPOSAL) all or nothing; an update is followed by an
immediate reconciliation of that proposal.
"""

import logging
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.exceptions import ConflictError, NotFoundError
from billboards.models.audit import AuditAction, AuditLog
from billboards.models.billboard import Billboard
from billboards.models.proposal import Proposal, ProposalStatus
from billboards.models.rental import Rental, RentalKind
from billboards.services.period_resolver import PeriodResolver
from billboards.services.reconciler import RECONCILED_STATUSES, Reconciler, ReconciliationStats
from billboards.services.reservation_service import ReservationService

logger = logging.getLogger(__name__)


class ProposalService:
    def __init__(self, db: AsyncSession, actor: str | None = None):
        self.db = db
        self.actor = actor or "system"

    async def list_proposals(self, company_id: int, status: ProposalStatus | None = None) -> list[Proposal]:
        query = select(Proposal).where(Proposal.company_id == company_id).order_by(Proposal.id.desc())
        if status is not None:
            query = query.where(Proposal.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_proposal(self, code: str, company_id: int) -> Proposal:
        result = await self.db.execute(
            select(Proposal).where(Proposal.code == code, Proposal.company_id == company_id)
        )
        proposal = result.scalar_one_or_none()
        if proposal is None:
            raise NotFoundError(f"Proposal {code} not found")
        return proposal

    async def _billboards(self, billboard_ids: list[int], company_id: int) -> list[Billboard]:
        wanted = sorted(set(billboard_ids))
        result = await self.db.execute(
            select(Billboard).where(Billboard.id.in_(wanted), Billboard.company_id == company_id)
        )
        billboards = list(result.scalars().all())
        missing = sorted(set(wanted) - {b.id for b in billboards})
        if missing:
            raise NotFoundError(
                f"Billboards not found: {', '.join(str(m) for m in missing)}", {"missing_ids": missing}
            )
        return billboards

    async def create_proposal(
        self,
        *,
        code: str,
        client_id: int,
        company_id: int,
        billboard_ids: list[int],
        raw_period,
        description: str | None = None,
    ) -> Proposal:
        """Creer et reserver tous les panneaux / Create and book every billboard, all or nothing."""
        period = await PeriodResolver(self.db).resolve(raw_period)
        if await self.db.scalar(select(Proposal.id).where(Proposal.code == code)):
            raise ConflictError(f"Proposal {code} already exists")
        billboards = await self._billboards(billboard_ids, company_id)

        proposal = Proposal(
            code=code,
            client_id=client_id,
            company_id=company_id,
            status=ProposalStatus.IN_PROGRESS,
            description=description,
        )
        proposal.apply_period(period)
        proposal.billboards = billboards
        self.db.add(proposal)
        await self.db.flush()
        self._audit(proposal.id, AuditAction.CREATE, {"code": code, "billboard_ids": sorted(b.id for b in billboards)})

        # Le commit de book_many couvre aussi la proposition / book_many's commit also covers the proposal
        await ReservationService(self.db, actor=self.actor).book_many(
            billboard_ids=sorted(b.id for b in billboards),
            client_id=client_id,
            company_id=company_id,
            period=period,
            kind=RentalKind.FROM_PROPOSAL,
            proposal_code=code,
        )
        logger.info("Proposal %s created with %s billboard(s)", code, len(billboards))
        return await self.get_proposal(code, company_id)

    async def update_proposal(
        self, code: str, company_id: int, changes: dict, raw_period=None
    ) -> tuple[Proposal, ReconciliationStats]:
        """Modifier puis reconcilier / Update then reconcile this proposal's rentals."""
        proposal = await self.get_proposal(code, company_id)
        if raw_period:
            proposal.apply_period(await PeriodResolver(self.db).resolve(raw_period))
        billboard_ids = changes.pop("billboard_ids", None)
        if billboard_ids is not None:
            proposal.billboards = await self._billboards(billboard_ids, company_id)
        for key, value in changes.items():
            setattr(proposal, key, value)
        self._audit(proposal.id, AuditAction.UPDATE, {**changes, "billboard_ids": billboard_ids, "period": raw_period})
        await self.db.commit()
        logger.info("Proposal %s updated: %s", code, sorted(changes) + (["billboards"] if billboard_ids else []))

        stats = ReconciliationStats(proposals_scanned=1)
        if proposal.status in RECONCILED_STATUSES:
            stats.merge(await Reconciler().reconcile_proposal(self.db, code))
        return await self.get_proposal(code, company_id), stats

    async def delete_proposal(self, code: str, company_id: int) -> int:
        """Supprimer la proposition et ses locations / Delete the proposal and its rentals."""
        proposal = await self.get_proposal(code, company_id)
        result = await self.db.execute(delete(Rental).where(Rental.proposal_code == code))
        removed = result.rowcount or 0
        self._audit(proposal.id, AuditAction.DELETE, {"code": code, "rentals_removed": removed})
        await self.db.delete(proposal)
        await self.db.commit()
        logger.info("Proposal %s deleted with %s rental(s)", code, removed)
        return removed

    def _audit(self, entity_id: int, action: AuditAction, changes: dict) -> None:
        self.db.add(AuditLog.entry("proposal", entity_id, action, changes, self.actor))
