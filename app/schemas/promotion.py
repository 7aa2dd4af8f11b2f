import uuid
from datetime import datetime

from sqlmodel import SQLModel


class PromotedProduct(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    original_price: float
    price: float


class ActivePromotion(SQLModel):
    """
    Display-ready promotion with its eligible products resolved.
    """

    id: uuid.UUID
    name: str
    description: str | None
    type: str
    discount_pct: float
    end_date: datetime
    products: list[PromotedProduct]
