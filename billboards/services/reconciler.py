"""
Réconciliation Propositions <-> Locations / Proposal <-> Rental reconciliation.

Passe periodique d'auto-reparation : chaque proposition IN_PROGRESS ou
COMPLETED doit avoir exactement une location par panneau, avec la meme
periode, le meme client et la meme entreprise. La proposition fait foi.
Periodic self-healing pass: every IN_PROGRESS or COMPLETED proposal must own
exactly one rental per billboard carrying the same period, client and
company. The proposal is the source of truth.

Les creations passent par ReservationService.book (verrou + verification de
chevauchement) ; une erreur sur une proposition est journalisee et n'arrete
pas le lot. Un bail en base limite la passe a une seule instance.
Creations go through ReservationService.book (lock + overlap check); a
failure on one proposal is logged and never stops the batch. A lease row
limits the pass to a single instance.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billboards.config import settings
from billboards.database import async_session
from billboards.exceptions import ConflictError
from billboards.models.audit import AuditAction, AuditLog
from billboards.models.proposal import Proposal, ProposalStatus
from billboards.models.reconciliation_lease import ReconciliationLease
from billboards.models.rental import Rental, RentalKind
from billboards.services.period_model import Period
from billboards.services.reservation_service import ReservationService, billboard_locks, rental_payload

logger = logging.getLogger(__name__)

LEASE_NAME = "proposal-rental-reconciliation"
ACTOR = "reconciler"

RECONCILED_STATUSES = (ProposalStatus.IN_PROGRESS, ProposalStatus.COMPLETED)


@dataclass
class ReconciliationStats:
    proposals_scanned: int = 0
    proposals_touched: int = 0
    rentals_created: int = 0
    rentals_corrected: int = 0
    rentals_removed: int = 0
    orphans_removed: int = 0
    conflicts: int = 0
    failures: int = 0
    skipped: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def corrective_actions(self) -> int:
        return self.rentals_created + self.rentals_corrected + self.rentals_removed + self.orphans_removed

    def merge(self, other: "ReconciliationStats") -> None:
        self.rentals_created += other.rentals_created
        self.rentals_corrected += other.rentals_corrected
        self.rentals_removed += other.rentals_removed
        self.orphans_removed += other.orphans_removed
        self.conflicts += other.conflicts
        self.errors.extend(other.errors)
        if other.corrective_actions:
            self.proposals_touched += 1

    def to_dict(self) -> dict:
        return {**asdict(self), "corrective_actions": self.corrective_actions}


@dataclass(frozen=True)
class _ProposalSnapshot:
    """Valeurs copiees avant toute ecriture / Values copied before any write."""
    code: str
    client_id: int
    company_id: int
    period: Period
    billboard_ids: tuple[int, ...]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


class Reconciler:
    """Passe de reconciliation / Reconciliation pass."""

    def __init__(self, session_factory: async_sessionmaker | None = None, holder: str | None = None):
        self.session_factory = session_factory or async_session
        self.holder = holder or settings.INSTANCE_ID

    # ── Bail / Lease ──────────────────────────────────────────

    async def acquire_lease(self) -> bool:
        """Prendre le bail s'il est libre ou expire / Take the lease if free or expired."""
        now = _now()
        expires_at = _iso(now + timedelta(seconds=settings.RECONCILIATION_LEASE_SECONDS))
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    update(ReconciliationLease)
                    .where(
                        ReconciliationLease.name == LEASE_NAME,
                        or_(
                            ReconciliationLease.expires_at <= _iso(now),
                            ReconciliationLease.holder == self.holder,
                        ),
                    )
                    .values(holder=self.holder, expires_at=expires_at)
                )
                if result.rowcount:
                    await db.commit()
                    return True
                if await db.get(ReconciliationLease, LEASE_NAME) is not None:
                    await db.rollback()
                    return False
                db.add(ReconciliationLease(name=LEASE_NAME, holder=self.holder, expires_at=expires_at))
                await db.commit()
                return True
            except IntegrityError:
                # Une autre instance a insere le bail en premier / Another instance inserted first
                await db.rollback()
                return False

    async def release_lease(self) -> None:
        async with self.session_factory() as db:
            await db.execute(
                update(ReconciliationLease)
                .where(ReconciliationLease.name == LEASE_NAME, ReconciliationLease.holder == self.holder)
                .values(expires_at=_iso(_now()))
            )
            await db.commit()

    # ── Passes ────────────────────────────────────────────────

    async def run_reconciliation(self) -> ReconciliationStats:
        """Synchronisation + nettoyage des orphelins sous bail / Sync + orphan cleanup under lease."""
        stats = ReconciliationStats()
        if not await self.acquire_lease():
            stats.skipped = True
            logger.info("Reconciliation skipped: lease held by another instance")
            return stats
        try:
            await self.sync_proposals_with_rentals(stats)
            await self.clean_orphan_rentals(stats)
        finally:
            await self.release_lease()

        log = logger.warning if stats.failures or stats.conflicts else logger.info
        log(
            "Reconciliation done: scanned=%s touched=%s created=%s corrected=%s removed=%s "
            "orphans=%s conflicts=%s failures=%s",
            stats.proposals_scanned, stats.proposals_touched, stats.rentals_created,
            stats.rentals_corrected, stats.rentals_removed, stats.orphans_removed,
            stats.conflicts, stats.failures,
        )
        return stats

    async def sync_proposals_with_rentals(self, stats: ReconciliationStats | None = None) -> ReconciliationStats:
        """Une session par proposition, erreurs isolees / One session per proposal, failures isolated."""
        stats = stats or ReconciliationStats()
        async with self.session_factory() as db:
            result = await db.execute(
                select(Proposal.code)
                .where(Proposal.status.in_(RECONCILED_STATUSES))
                .order_by(Proposal.id)
            )
            codes = list(result.scalars().all())

        for code in codes:
            stats.proposals_scanned += 1
            try:
                async with self.session_factory() as db:
                    outcome = await self.reconcile_proposal(db, code)
                stats.merge(outcome)
            except Exception as exc:
                # Reessaye a la prochaine passe / Retried on the next pass
                stats.failures += 1
                stats.errors.append(f"{code}: {exc}")
                logger.error("Reconciliation failed for proposal %s: %s", code, exc, exc_info=True)
        return stats

    async def reconcile_proposal(self, db: AsyncSession, code: str) -> ReconciliationStats:
        """Aligner les locations d'une proposition / Align one proposal's rentals."""
        outcome = ReconciliationStats()
        result = await db.execute(select(Proposal).where(Proposal.code == code))
        proposal = result.scalar_one_or_none()
        if proposal is None:
            return outcome

        snapshot = _ProposalSnapshot(
            code=proposal.code,
            client_id=proposal.client_id,
            company_id=proposal.company_id,
            period=proposal.period,
            billboard_ids=tuple(proposal.billboard_ids),
        )
        result = await db.execute(
            select(Rental).where(Rental.proposal_code == code).order_by(Rental.id)
        )
        rentals = list(result.scalars().all())

        kept: dict[int, Rental] = {}
        surplus: list[Rental] = []
        for rental in rentals:
            if rental.billboard_id in snapshot.billboard_ids and rental.billboard_id not in kept:
                kept[rental.billboard_id] = rental
            else:
                surplus.append(rental)

        if surplus:
            await self._remove_surplus(db, snapshot, surplus, outcome)

        for rental in kept.values():
            await self._correct(db, snapshot, rental, outcome)

        missing = [bid for bid in snapshot.billboard_ids if bid not in kept]
        if missing:
            await self._create_missing(db, snapshot, missing, outcome)

        if outcome.corrective_actions:
            logger.info(
                "Proposal %s reconciled: created=%s corrected=%s removed=%s",
                code, outcome.rentals_created, outcome.rentals_corrected, outcome.rentals_removed,
            )
        return outcome

    async def _remove_surplus(self, db, snapshot, surplus: list[Rental], outcome: ReconciliationStats):
        """Billboard retire de la proposition ou doublon / Billboard dropped from proposal, or duplicate."""
        for rental in surplus:
            logger.warning(
                "Removing rental %s (billboard %s) no longer matching proposal %s",
                rental.id, rental.billboard_id, snapshot.code,
            )
            self._audit(db, rental.id, AuditAction.RECONCILE_DELETE, rental_payload(rental))
            await db.delete(rental)
        await db.commit()
        outcome.rentals_removed += len(surplus)

    async def _correct(self, db, snapshot, rental: Rental, outcome: ReconciliationStats):
        """Reecrire les champs divergents / Overwrite divergent fields from the proposal."""
        period = snapshot.period
        desired = {
            "period_type": period.period_type,
            "start_date": period.start_date,
            "end_date": period.end_date,
            "slot_ids": list(period.slot_ids),
            "client_id": snapshot.client_id,
            "company_id": snapshot.company_id,
        }
        changes = {
            key: {"from": getattr(rental, key), "to": value}
            for key, value in desired.items()
            if getattr(rental, key) != value
        }
        if not changes:
            return

        rental_id, billboard_id = rental.id, rental.billboard_id
        service = ReservationService(db, actor=ACTOR)
        async with billboard_locks([billboard_id]):
            if changes.keys() & {"period_type", "start_date", "end_date", "company_id"}:
                # Meme unite que book_many : verrou ligne puis verification / Same unit as book_many
                await service.lock_billboard(billboard_id, snapshot.company_id)
                conflict = await service.find_conflict(
                    billboard_id, snapshot.company_id, period.start_date, period.end_exclusive,
                    exclude_ids=(rental_id,),
                )
                if conflict:
                    outcome.conflicts += 1
                    message = (
                        f"{snapshot.code}: rental {rental_id} cannot move to "
                        f"{period.start_date}..{period.end_date}, blocked by rental {conflict.id}"
                    )
                    outcome.errors.append(message)
                    logger.warning("Reconciliation conflict: %s", message)
                    return
            for key, value in desired.items():
                setattr(rental, key, value)
            self._audit(db, rental_id, AuditAction.RECONCILE_UPDATE, changes)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                outcome.conflicts += 1
                outcome.errors.append(f"{snapshot.code}: rental {rental_id} rejected by overlap constraint")
                logger.warning("Overlap constraint rejected correction of rental %s", rental_id)
                return

        outcome.rentals_corrected += 1
        logger.warning("Rental %s corrected from proposal %s: %s", rental_id, snapshot.code, sorted(changes))

    async def _create_missing(self, db, snapshot, missing: list[int], outcome: ReconciliationStats):
        service = ReservationService(db, actor=ACTOR)
        for billboard_id in missing:
            try:
                await service.book(
                    billboard_id=billboard_id,
                    client_id=snapshot.client_id,
                    company_id=snapshot.company_id,
                    period=snapshot.period,
                    kind=RentalKind.FROM_PROPOSAL,
                    proposal_code=snapshot.code,
                )
            except ConflictError as exc:
                outcome.conflicts += 1
                outcome.errors.append(f"{snapshot.code}: {exc.message}")
                continue
            outcome.rentals_created += 1

    async def clean_orphan_rentals(self, stats: ReconciliationStats | None = None) -> ReconciliationStats:
        """Supprimer les locations FROM_PROPOSAL sans proposition / Delete FROM_PROPOSAL rentals without a proposal."""
        stats = stats or ReconciliationStats()
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    select(Rental).where(
                        Rental.kind == RentalKind.FROM_PROPOSAL,
                        or_(
                            Rental.proposal_code.is_(None),
                            Rental.proposal_code.notin_(select(Proposal.code)),
                        ),
                    )
                )
                orphans = list(result.scalars().all())
                for rental in orphans:
                    logger.warning(
                        "Removing orphan rental %s (proposal %s no longer exists)", rental.id, rental.proposal_code
                    )
                    self._audit(db, rental.id, AuditAction.ORPHAN_DELETE, rental_payload(rental))
                    await db.delete(rental)
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                stats.failures += 1
                stats.errors.append(f"orphan cleanup: {exc}")
                logger.error("Orphan cleanup failed: %s", exc, exc_info=True)
                return stats
        stats.orphans_removed += len(orphans)
        return stats

    @staticmethod
    def _audit(db: AsyncSession, entity_id: int, action: AuditAction, changes: dict) -> None:
        db.add(AuditLog.entry("rental", entity_id, action, changes, ACTOR))
