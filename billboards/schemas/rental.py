"""Schémas Location / Rental schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict, computed_field

from billboards.models.period import PeriodType
from billboards.models.rental import RentalKind, RentalStatus
from billboards.schemas.period import PeriodInput


class RentalCreate(PeriodInput):
    billboard_id: int
    client_id: int
    notes: str | None = None


class RentalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    billboard_id: int
    client_id: int
    company_id: int
    proposal_code: str | None = None
    kind: RentalKind
    status: RentalStatus
    period_type: PeriodType
    start_date: date
    end_date: date
    slot_ids: list[str] = []
    notes: str | None = None
    created_at: str | None = None

    # Vue heritee calculee a la serialisation / Legacy view computed at serialization
    @computed_field
    @property
    def data_inicio(self) -> date:
        return self.start_date

    @computed_field
    @property
    def data_fim(self) -> date:
        return self.end_date

    @computed_field
    @property
    def bi_week_ids(self) -> list[str]:
        return list(self.slot_ids)
