import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class Product(SQLModel, table=True):
    """
    Catalog entry.

    Only the fields the commerce core reads or mutates:
      - price (checkout), stock_quantity / sold_count (order side effects),
        weight_kg (parcel weight for shipping), is_active
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    price: float = Field(
        gt=0,
        description="Unit price (UGX)",
    )

    stock_quantity: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    sold_count: int = Field(
        default=0,
        description="Units sold through non-cancelled orders",
    )

    weight_kg: float | None = Field(
        default=None,
        ge=0,
        description="Shipping weight of one unit",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime,
        description="Creation timestamp (UTC)",
    )
