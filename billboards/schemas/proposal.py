"""Schémas Proposition / Proposal schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from billboards.models.period import PeriodType
from billboards.models.proposal import ProposalStatus
from billboards.schemas.period import PeriodInput


class ProposalCreate(PeriodInput):
    code: str = Field(min_length=1, max_length=30)
    client_id: int
    billboard_ids: list[int] = Field(min_length=1)
    description: str | None = None


class ProposalUpdate(PeriodInput):
    client_id: int | None = None
    billboard_ids: list[int] | None = Field(default=None, min_length=1)
    status: ProposalStatus | None = None
    description: str | None = None


class ProposalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    client_id: int
    company_id: int
    status: ProposalStatus
    period_type: PeriodType
    start_date: date
    end_date: date
    slot_ids: list[str] = []
    billboard_ids: list[int] = []
    description: str | None = None
