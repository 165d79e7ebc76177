"""
Service de reservation / Reservation service (conflict detector).

Garantit au plus une location ACTIVE par panneau sur un intervalle qui se
chevauche, et valide chaque nouvelle location de facon atomique :
verrou par panneau + SELECT ... FOR UPDATE sur le panneau + verification
[start, end) + insertion + commit dans la meme unite. Sur PostgreSQL la
contrainte d'exclusion rentals_no_overlap (voir database.py) couvre aussi
les autres processus.

Guarantees at most one ACTIVE rental per billboard per overlapping interval
and commits each new rental atomically: per-billboard lock + SELECT ... FOR
UPDATE on the billboard + [start, end) check + insert + commit in one unit.
On PostgreSQL the rentals_no_overlap exclusion constraint (see database.py)
also covers other processes.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.exceptions import ConflictError, EngineError, InternalError, NotFoundError
from billboards.models.audit import AuditAction, AuditLog
from billboards.models.billboard import Billboard
from billboards.models.rental import Rental, RentalKind, RentalStatus
from billboards.services.notifications import RENTAL_CANCELLED, RENTAL_CREATED, RentalEventBus, event_bus
from billboards.services.period_model import Period
from billboards.services.period_resolver import PeriodResolver

logger = logging.getLogger(__name__)

# Verrous par boucle puis par panneau / Locks per event loop, then per billboard
_locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


def _lock_for(billboard_id: int) -> asyncio.Lock:
    per_loop = _locks.setdefault(asyncio.get_running_loop(), {})
    lock = per_loop.get(billboard_id)
    if lock is None:
        lock = per_loop[billboard_id] = asyncio.Lock()
    return lock


@asynccontextmanager
async def billboard_locks(billboard_ids):
    """Verrouiller plusieurs panneaux dans l'ordre croissant / Lock billboards in ascending order."""
    locks = [_lock_for(bid) for bid in sorted(set(billboard_ids))]
    acquired = []
    try:
        for lock in locks:
            await lock.acquire()
            acquired.append(lock)
        yield
    finally:
        for lock in reversed(acquired):
            lock.release()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def rental_payload(rental: Rental) -> dict:
    return {
        "rental_id": rental.id,
        "billboard_id": rental.billboard_id,
        "client_id": rental.client_id,
        "company_id": rental.company_id,
        "period_type": rental.period_type.value,
        "start_date": rental.start_date.isoformat(),
        "end_date": rental.end_date.isoformat(),
        "slot_ids": list(rental.slot_ids or []),
        "proposal_code": rental.proposal_code,
        "kind": rental.kind.value,
    }


class ReservationService:
    """Creation/annulation de locations / Rental creation and cancellation."""

    def __init__(self, db: AsyncSession, bus: RentalEventBus | None = None, actor: str | None = None):
        self.db = db
        self.bus = bus or event_bus
        self.actor = actor or "system"

    async def create_rental(
        self,
        billboard_id: int,
        client_id: int,
        company_id: int,
        raw_period,
        notes: str | None = None,
    ) -> Rental:
        """Reserver un panneau / Book a billboard (kind=MANUAL).

        Les erreurs de resolution remontent telles quelles ; le drapeau
        available du panneau n'est jamais modifie.
        Resolution errors propagate unchanged; the billboard's available flag
        is never touched.
        """
        logger.info("Creating rental: billboard=%s company=%s", billboard_id, company_id)
        period = await PeriodResolver(self.db).resolve(raw_period)
        rental = await self.book(
            billboard_id=billboard_id,
            client_id=client_id,
            company_id=company_id,
            period=period,
            kind=RentalKind.MANUAL,
            notes=notes,
        )
        await self.bus.publish(RENTAL_CREATED, rental_payload(rental))
        return rental

    async def book(
        self,
        *,
        billboard_id: int,
        client_id: int,
        company_id: int,
        period: Period,
        kind: RentalKind,
        proposal_code: str | None = None,
        notes: str | None = None,
    ) -> Rental:
        """Unite atomique verification + insertion + commit / Atomic check-insert-commit unit.

        Utilise aussi par le reconciliateur pour ne jamais creer de doublon.
        Also used by the reconciler so it never introduces an overlap.
        """
        rentals = await self.book_many(
            billboard_ids=[billboard_id],
            client_id=client_id,
            company_id=company_id,
            period=period,
            kind=kind,
            proposal_code=proposal_code,
            notes=notes,
        )
        return rentals[0]

    async def book_many(
        self,
        *,
        billboard_ids: list[int],
        client_id: int,
        company_id: int,
        period: Period,
        kind: RentalKind,
        proposal_code: str | None = None,
        notes: str | None = None,
        commit: bool = True,
    ) -> list[Rental]:
        """Reserver plusieurs panneaux, tout ou rien / Book several billboards, all or nothing."""
        async with billboard_locks(billboard_ids):
            try:
                rentals = []
                for billboard_id in billboard_ids:
                    await self.lock_billboard(billboard_id, company_id)
                    conflict = await self.find_conflict(
                        billboard_id, company_id, period.start_date, period.end_exclusive
                    )
                    if conflict:
                        raise self._conflict_error(conflict)
                    rental = Rental(
                        billboard_id=billboard_id,
                        client_id=client_id,
                        company_id=company_id,
                        proposal_code=proposal_code,
                        kind=kind,
                        status=RentalStatus.ACTIVE,
                        notes=notes,
                        created_at=_now_iso(),
                    )
                    rental.apply_period(period)
                    self.db.add(rental)
                    rentals.append(rental)
                await self.db.flush()
                for rental in rentals:
                    self._audit(rental.id, AuditAction.CREATE, rental_payload(rental))
                if commit:
                    await self.db.commit()
                else:
                    await self.db.flush()
            except EngineError as exc:
                await self.db.rollback()
                if isinstance(exc, ConflictError):
                    logger.warning("Booking conflict: %s", exc.message)
                raise
            except IntegrityError as exc:
                await self.db.rollback()
                if "rentals_no_overlap" in str(exc.orig):
                    logger.warning("Exclusion constraint rejected booking for billboards %s", billboard_ids)
                    raise ConflictError(
                        "Billboard already booked for an overlapping period",
                        {"billboard_ids": billboard_ids},
                    ) from exc
                logger.error("Integrity error while booking: %s", exc, exc_info=True)
                raise InternalError(f"Booking failed: {exc}") from exc
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Storage fault while booking: %s", exc, exc_info=True)
                raise InternalError(f"Booking failed: {exc}") from exc

        for rental in rentals:
            logger.info(
                "Rental %s created: billboard=%s %s..%s kind=%s",
                rental.id, rental.billboard_id, rental.start_date, rental.end_date, rental.kind.value,
            )
        return rentals

    async def lock_billboard(self, billboard_id: int, company_id: int) -> Billboard:
        """Verrou ligne du panneau (FOR UPDATE) / Billboard row lock shared by every overlap-checked write."""
        result = await self.db.execute(
            select(Billboard)
            .where(Billboard.id == billboard_id, Billboard.company_id == company_id)
            .with_for_update()
        )
        billboard = result.scalar_one_or_none()
        if billboard is None:
            raise NotFoundError(f"Billboard {billboard_id} not found")
        return billboard

    async def find_conflict(
        self,
        billboard_id: int,
        company_id: int,
        start: date,
        end: date,
        exclude_ids: tuple[int, ...] = (),
    ) -> Rental | None:
        """Location ACTIVE qui chevauche [start, end) / ACTIVE rental overlapping [start, end).

        `end` est exclusif ; on compare a la fin semi-ouverte stockee (end_exclusive).
        `end` is exclusive and is compared with the stored half-open end (end_exclusive).
        existing.start < new.end AND existing.end > new.start : des bornes
        qui se touchent ne sont pas un conflit / touching bounds do not conflict.
        """
        query = select(Rental).where(
            Rental.billboard_id == billboard_id,
            Rental.company_id == company_id,
            Rental.status == RentalStatus.ACTIVE,
            Rental.start_date < end,
            Rental.end_exclusive > start,
        )
        if exclude_ids:
            query = query.where(Rental.id.notin_(exclude_ids))
        result = await self.db.execute(query.order_by(Rental.start_date).limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    def _conflict_error(conflict: Rental) -> ConflictError:
        return ConflictError(
            f"Billboard {conflict.billboard_id} is already booked from "
            f"{conflict.start_date.isoformat()} to {conflict.end_date.isoformat()} "
            f"(rental {conflict.id})",
            {"conflicting_rental": {
                "id": conflict.id,
                "billboard_id": conflict.billboard_id,
                "start_date": conflict.start_date.isoformat(),
                "end_date": conflict.end_date.isoformat(),
                "proposal_code": conflict.proposal_code,
            }},
        )

    async def cancel_rental(self, rental_id: int, company_id: int) -> None:
        """Annuler (supprimer) une location / Cancel (delete) a rental. Aucune ecriture sur le panneau."""
        logger.info("Cancelling rental %s for company %s", rental_id, company_id)
        try:
            result = await self.db.execute(
                select(Rental).where(Rental.id == rental_id, Rental.company_id == company_id)
            )
            rental = result.scalar_one_or_none()
            if rental is None:
                raise NotFoundError("Rental not found")
            payload = rental_payload(rental)
            await self.db.delete(rental)
            self._audit(rental_id, AuditAction.DELETE, payload)
            await self.db.commit()
        except EngineError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Storage fault while cancelling rental %s: %s", rental_id, exc, exc_info=True)
            raise InternalError(f"Cancellation failed: {exc}") from exc

        logger.info("Rental %s cancelled", rental_id)
        await self.bus.publish(RENTAL_CANCELLED, payload)

    async def is_occupied(self, billboard_id: int, on_date: date) -> bool:
        """Occupation calculee en direct / Occupancy computed live from ACTIVE rentals."""
        result = await self.db.execute(
            select(Rental.id).where(
                Rental.billboard_id == billboard_id,
                Rental.status == RentalStatus.ACTIVE,
                Rental.start_date <= on_date,
                Rental.end_exclusive > on_date,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def occupied_billboard_ids(self, company_id: int, on_date: date) -> set[int]:
        result = await self.db.execute(
            select(Rental.billboard_id).where(
                Rental.company_id == company_id,
                Rental.status == RentalStatus.ACTIVE,
                Rental.start_date <= on_date,
                Rental.end_exclusive > on_date,
            ).distinct()
        )
        return set(result.scalars().all())

    async def rentals_for_billboard(self, billboard_id: int, company_id: int) -> list[Rental]:
        result = await self.db.execute(
            select(Rental)
            .where(Rental.billboard_id == billboard_id, Rental.company_id == company_id)
            .order_by(Rental.start_date.desc())
        )
        return list(result.scalars().all())

    async def rentals_overlapping(self, company_id: int, start: date, end: date) -> list[Rental]:
        result = await self.db.execute(
            select(Rental).where(
                Rental.company_id == company_id,
                Rental.status == RentalStatus.ACTIVE,
                Rental.start_date < end,
                Rental.end_exclusive > start,
            ).order_by(Rental.start_date.desc())
        )
        return list(result.scalars().all())

    async def available_billboards(self, company_id: int, start: date, end: date) -> list[Billboard]:
        """Panneaux libres sur [start, end) et sans maintenance / Free billboards with no maintenance hold."""
        booked = {r.billboard_id for r in await self.rentals_overlapping(company_id, start, end)}
        result = await self.db.execute(
            select(Billboard)
            .where(Billboard.company_id == company_id, Billboard.available.is_(True))
            .order_by(Billboard.code)
        )
        return [b for b in result.scalars().all() if b.id not in booked]

    def _audit(self, entity_id: int, action: AuditAction, changes: dict) -> None:
        self.db.add(AuditLog.entry("rental", entity_id, action, changes, self.actor))
