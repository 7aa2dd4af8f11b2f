import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.order import OrderStatus


class OrderLineCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0)


class OrderCreate(SQLModel):
    """
    Checkout payload.

    User provides:
      - line items (product + quantity); prices are read from the catalog
      - shipping zone
      - optional coupon code and reward point redemption

    Backend derives:
      - user_id from token
      - status = PENDING
      - subtotal / discount / shipping fee / total
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderLineCreate] = Field(min_length=1)
    shipping_zone_id: uuid.UUID
    coupon_code: str | None = None
    use_reward_points: bool = False
    note: str | None = None

    @field_validator("coupon_code", "note")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    status: OrderStatus
    subtotal: float
    discount_amount: float
    coupon_code: str | None
    coupon_discount: float
    points_used: int
    points_discount: float
    shipping_fee: float
    total: float
    shipping_zone_id: uuid.UUID | None
    estimated_delivery_days: int | None
    tracking_number: str | None
    tracking_url: str | None
    note: str | None
    created_at: datetime
    confirmed_at: datetime | None
    processed_at: datetime | None
    shipped_at: datetime | None
    out_for_delivery_at: datetime | None
    delivered_at: datetime | None
    cancelled_at: datetime | None


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str | None
    quantity: int
    unit_price: float
    line_total: float


class OrderStatusHistoryRead(SQLModel):
    status: OrderStatus
    note: str | None
    actor_id: uuid.UUID | None
    created_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items and the status timeline.
    """

    items: list[OrderItemRead]
    history: list[OrderStatusHistoryRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.

    Only the named fields exist; tracking fields are stored whenever they
    are sent with a real status change.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    note: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


class OrderTrackingRead(SQLModel):
    """
    Public tracking view (no prices, no customer data).
    """

    order_number: str
    status: OrderStatus
    created_at: datetime
    estimated_delivery_days: int | None
    tracking_number: str | None
    history: list[OrderStatusHistoryRead]
