"""Schémas Bi-semaine / Bi-week schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class BiWeekBase(BaseModel):
    id: str = Field(pattern=r"^\d{4}-\d{2}$")
    year: int
    number: int
    start_date: date
    end_date: date
    description: str | None = None
    active: bool = True


class BiWeekCreate(BiWeekBase):
    pass


class BiWeekUpdate(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None
    active: bool | None = None


class BiWeekRead(BiWeekBase):
    model_config = ConfigDict(from_attributes=True)
    span_days: int


class CalendarGenerateRequest(BaseModel):
    year: int
    start_date: date | None = None
    overwrite: bool = False


class CalendarSummaryRead(BaseModel):
    year: int
    created: int
    updated: int
    skipped: int
    total: int
    message: str
