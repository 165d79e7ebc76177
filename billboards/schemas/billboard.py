"""Schémas Panneau / Billboard schemas."""

from pydantic import BaseModel, ConfigDict


class BillboardBase(BaseModel):
    code: str
    street_name: str | None = None
    size: str | None = None
    coordinates: str | None = None
    notes: str | None = None


class BillboardCreate(BillboardBase):
    available: bool = True


class MaintenanceUpdate(BaseModel):
    available: bool
    notes: str | None = None


class BillboardRead(BillboardBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    company_id: int
    available: bool
    # Calcules en direct / Computed live from rentals
    occupied_now: bool = False
    available_now: bool = True
