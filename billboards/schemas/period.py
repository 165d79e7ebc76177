"""Schémas Période / Period schemas."""

from datetime import date

from pydantic import AliasChoices, BaseModel, Field


class PeriodInput(BaseModel):
    """Entree moderne ou heritee, resolue cote service / Modern or legacy input, resolved server-side.

    Les dates restent des chaines : leur validation produit les erreurs 400 du moteur.
    """
    period_type: str | None = Field(default=None, validation_alias=AliasChoices("period_type", "periodType"))
    start_date: str | None = Field(default=None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: str | None = Field(default=None, validation_alias=AliasChoices("end_date", "endDate"))
    slot_ids: list[str] | None = Field(default=None, validation_alias=AliasChoices("slot_ids", "slotIds"))
    # Champs herites / Legacy fields
    bi_week_ids: list[str] | None = Field(default=None, validation_alias=AliasChoices("bi_week_ids", "biWeekIds"))
    data_inicio: str | None = None
    data_fim: str | None = None

    def raw_period(self) -> dict:
        return self.model_dump(
            include={"period_type", "start_date", "end_date", "slot_ids", "bi_week_ids", "data_inicio", "data_fim"},
            exclude_none=True,
        )


class PeriodRead(BaseModel):
    period_type: str
    start_date: date
    end_date: date
    slot_ids: list[str] = []
    duration_days: int
    label: str


class AlignmentRequest(BaseModel):
    start_date: date
    end_date: date


class AlignmentSuggestionRead(BaseModel):
    start_date: date
    end_date: date
    slot_ids: list[str]
    message: str


class AlignmentRead(BaseModel):
    aligned: bool
    message: str
    slot_ids: list[str] = []
    suggestion: AlignmentSuggestionRead | None = None


class ResolutionRead(BaseModel):
    period: PeriodRead
    alignment: AlignmentRead | None = None
