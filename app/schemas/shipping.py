import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class ShippingCalculateRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    zone_id: uuid.UUID
    # Defaults to 1 kg when omitted
    weight_kg: float | None = Field(default=None, ge=0)


class ShippingQuote(SQLModel):
    zone_id: uuid.UUID
    zone_name: str
    district: str
    distance_km: float
    weight_kg: float
    shipping_fee: float
    estimated_days: int


class ShippingZoneRead(SQLModel):
    id: uuid.UUID
    name: str
    district: str
    region: str
    distance_km: float
    base_fee: float
    per_kg_fee: float
    estimated_days: int


class ShippingZoneList(SQLModel):
    zones: list[ShippingZoneRead]
    grouped: dict[str, list[ShippingZoneRead]]
