"""
Maintenance des statuts / Status maintenance.

Locations ACTIVE terminees -> FINISHED ; propositions IN_PROGRESS echues -> EXPIRED.
Elapsed ACTIVE rentals -> FINISHED; elapsed IN_PROGRESS proposals -> EXPIRED.
"""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import and_, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.models.period import PeriodType
from billboards.models.proposal import Proposal, ProposalStatus
from billboards.models.rental import Rental, RentalStatus

logger = logging.getLogger(__name__)


@dataclass
class StatusUpdate:
    rentals_finished: int = 0
    proposals_expired: int = 0


async def expire_elapsed(db: AsyncSession, today: date | None = None) -> StatusUpdate:
    """Fin semi-ouverte atteinte / Half-open end reached: a slot's last day still counts as active."""
    today = today or date.today()
    rentals = await db.execute(
        update(Rental)
        .where(Rental.status == RentalStatus.ACTIVE, Rental.end_exclusive <= today)
        .values(status=RentalStatus.FINISHED)
    )
    proposals = await db.execute(
        update(Proposal)
        .where(
            Proposal.status == ProposalStatus.IN_PROGRESS,
            or_(
                and_(Proposal.period_type == PeriodType.DISCRETE, Proposal.end_date < today),
                and_(Proposal.period_type == PeriodType.CUSTOM, Proposal.end_date <= today),
            ),
        )
        .values(status=ProposalStatus.EXPIRED)
    )
    await db.commit()

    outcome = StatusUpdate(rentals.rowcount or 0, proposals.rowcount or 0)
    if outcome.rentals_finished or outcome.proposals_expired:
        logger.info(
            "Status maintenance: %s rental(s) finished, %s proposal(s) expired",
            outcome.rentals_finished, outcome.proposals_expired,
        )
    return outcome
