import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Timestamp column stamped when an order enters a status
ORDER_STATUS_TIMESTAMPS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PROCESSING: "processed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


class Order(SQLModel, table=True):
    """
    Customer order.

    Money invariant:
      total = subtotal - discount_amount + shipping_fee, total >= 0
      discount_amount = coupon_discount + points_discount <= subtotal

    Only OrderService mutates rows in this table.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Human-readable reference, e.g. CHK-LXK3F2A1-9QZT",
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        index=True,
        description="Order status lifecycle",
    )

    subtotal: float = Field(ge=0)
    discount_amount: float = Field(default=0, ge=0)
    shipping_fee: float = Field(default=0, ge=0)
    total: float = Field(ge=0)

    # Discount breakdown
    coupon_id: uuid.UUID | None = Field(default=None, foreign_key="coupons.id")
    coupon_code: str | None = None
    coupon_discount: float = Field(default=0, ge=0)
    points_used: int = Field(default=0, ge=0)
    points_discount: float = Field(default=0, ge=0)

    # Shipping
    shipping_zone_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="shipping_zones.id",
    )
    parcel_weight_kg: float | None = None
    estimated_delivery_days: int | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None

    note: str | None = Field(
        default=None,
        description="Optional note / special instructions",
    )

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    confirmed_at: datetime | None = Field(default=None, sa_type=DateTime)
    processed_at: datetime | None = Field(default=None, sa_type=DateTime)
    shipped_at: datetime | None = Field(default=None, sa_type=DateTime)
    out_for_delivery_at: datetime | None = Field(default=None, sa_type=DateTime)
    delivered_at: datetime | None = Field(default=None, sa_type=DateTime)
    cancelled_at: datetime | None = Field(default=None, sa_type=DateTime)


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. `position` keeps the order the customer sent.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    position: int = Field(default=0, ge=0)

    product_name: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        description="Unit price at time of order",
    )


class OrderStatusHistory(SQLModel, table=True):
    """
    Append-only audit trail. Rows are inserted, never updated or deleted.
    """

    __tablename__ = "order_status_history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    status: OrderStatus
    note: str | None = None

    # None for system-generated entries (e.g. guest checkout)
    actor_id: uuid.UUID | None = None

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
