"""Routes Propositions / Proposal API routes."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from billboards.api.deps import CurrentUser, get_current_user
from billboards.config import settings
from billboards.database import get_db
from billboards.models.proposal import ProposalStatus
from billboards.rate_limit import limiter
from billboards.schemas.proposal import ProposalCreate, ProposalRead, ProposalUpdate
from billboards.services.proposal_service import ProposalService

router = APIRouter()


@router.get("/", response_model=list[ProposalRead])
async def list_proposals(
    status: ProposalStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Lister les propositions / List proposals."""
    return await ProposalService(db).list_proposals(user.company_id, status)


@router.get("/{code}", response_model=ProposalRead)
async def get_proposal(code: str, db: AsyncSession = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    """Obtenir une proposition / Get a proposal."""
    return await ProposalService(db).get_proposal(code, user.company_id)


@router.post("/", response_model=ProposalRead, status_code=201)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def create_proposal(
    request: Request,
    data: ProposalCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Créer une proposition et reserver ses panneaux / Create a proposal and book its billboards."""
    return await ProposalService(db, actor=user.actor).create_proposal(
        code=data.code,
        client_id=data.client_id,
        company_id=user.company_id,
        billboard_ids=data.billboard_ids,
        raw_period=data.raw_period(),
        description=data.description,
    )


@router.put("/{code}", response_model=ProposalRead)
async def update_proposal(
    code: str,
    data: ProposalUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Modifier une proposition / Update a proposal (its rentals follow)."""
    changes = data.model_dump(exclude_unset=True, include={"client_id", "billboard_ids", "status", "description"})
    proposal, _ = await ProposalService(db, actor=user.actor).update_proposal(
        code, user.company_id, changes, raw_period=data.raw_period() or None
    )
    return proposal


@router.delete("/{code}", status_code=204)
async def delete_proposal(code: str, db: AsyncSession = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    """Supprimer une proposition et ses locations / Delete a proposal and its rentals."""
    await ProposalService(db, actor=user.actor).delete_proposal(code, user.company_id)
