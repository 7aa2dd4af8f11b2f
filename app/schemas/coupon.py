import uuid

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.coupon import DiscountType


class CouponValidateRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    order_total: float = Field(ge=0)

    @field_validator("code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Coupon code is required")
        return v


class CouponQuote(SQLModel):
    """
    Result of a successful validation. Usage is not consumed.
    """

    coupon_id: uuid.UUID
    code: str
    type: DiscountType
    value: float
    discount: float
    description: str | None = None
