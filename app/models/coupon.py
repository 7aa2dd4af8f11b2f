import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, UniqueConstraint, func
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class Coupon(SQLModel, table=True):
    """
    Customer-entered discount code.

    `code` is unique ignoring case (unique index on upper(code)) and lookups
    compare upper-cased values, so matching is case-insensitive.
    `usage_count` only moves up, inside the order-creation transaction
    (see DiscountService.redeem_coupon).
    """

    __tablename__ = "coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    code: str = Field(unique=True, index=True, max_length=50)

    description: str | None = None

    discount_type: DiscountType

    # Percentage (0-100) or fixed amount
    discount_value: float = Field(gt=0)

    min_order_amount: float | None = None

    # Cap for percentage coupons
    max_discount_amount: float | None = None

    # None = unlimited
    usage_limit: int | None = None
    per_user_limit: int | None = None

    usage_count: int = Field(default=0, ge=0)

    start_date: datetime | None = Field(default=None, sa_type=DateTime)
    end_date: datetime | None = Field(default=None, sa_type=DateTime)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


# "save10" and "SAVE10" are the same coupon
Index("uq_coupons_code_upper", func.upper(Coupon.__table__.c.code), unique=True)


class CouponUsage(SQLModel, table=True):
    """
    One row per order that consumed a coupon. Drives per-user limits.
    """

    __tablename__ = "coupon_usages"
    __table_args__ = (UniqueConstraint("coupon_id", "order_id"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    coupon_id: uuid.UUID = Field(foreign_key="coupons.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    order_id: uuid.UUID = Field(foreign_key="orders.id")

    discount: float = Field(ge=0)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
