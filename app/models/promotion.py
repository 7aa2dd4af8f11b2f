import uuid
from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class Promotion(SQLModel, table=True):
    """
    Administrator-curated, automatically applied discount on a fixed list of
    products within [start_date, end_date].
    """

    __tablename__ = "promotions"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100)
    description: str | None = None

    # FLASH_SALE | SEASONAL | CLEARANCE ... (display only)
    type: str = Field(default="FLASH_SALE", max_length=30)

    discount_pct: float = Field(gt=0, le=100)

    start_date: datetime = Field(sa_type=DateTime)
    end_date: datetime = Field(sa_type=DateTime)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class PromotionProduct(SQLModel, table=True):
    """
    Eligible product for a promotion; `position` preserves the curated order.
    """

    __tablename__ = "promotion_products"
    __table_args__ = (UniqueConstraint("promotion_id", "product_id"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    promotion_id: uuid.UUID = Field(foreign_key="promotions.id", index=True)
    product_id: uuid.UUID = Field(foreign_key="products.id", index=True)
    position: int = Field(default=0, ge=0)
