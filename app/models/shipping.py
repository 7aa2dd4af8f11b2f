import uuid

from sqlmodel import SQLModel, Field


class ShippingZone(SQLModel, table=True):
    """
    Delivery region with distance-based fee parameters.

      fee = base_fee + per_kg_fee * weight_kg
    """

    __tablename__ = "shipping_zones"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100)
    district: str = Field(max_length=100, index=True)
    region: str = Field(max_length=100, index=True)

    distance_km: float = Field(default=0, ge=0)

    base_fee: float = Field(ge=0)
    per_kg_fee: float = Field(default=0, ge=0)

    estimated_days: int = Field(default=1, ge=0)

    is_active: bool = Field(default=True, index=True)
