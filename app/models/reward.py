import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class RewardPointType(str, Enum):
    EARNED_PURCHASE = "EARNED_PURCHASE"
    EARNED_REVIEW = "EARNED_REVIEW"
    REDEEMED = "REDEEMED"
    ADJUSTMENT = "ADJUSTMENT"


class RewardPoint(SQLModel, table=True):
    """
    Append-only loyalty ledger. A user's balance is the sum of their rows;
    it is never stored anywhere else.

    (order_id, type) is unique: an order earns at most once and redeems at
    most once. Rows without an order (reviews, adjustments) are unaffected
    because NULLs never collide.
    """

    __tablename__ = "reward_points"
    __table_args__ = (UniqueConstraint("order_id", "type"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    # Signed: positive for earned, negative for redeemed
    points: int

    type: RewardPointType

    description: str | None = None

    order_id: uuid.UUID | None = Field(default=None, foreign_key="orders.id")

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)


class RewardTier(SQLModel, table=True):
    __tablename__ = "reward_tiers"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    name: str = Field(unique=True, max_length=50)
    min_points: int = Field(default=0, ge=0)
    points_multiplier: float = Field(default=1.0, gt=0)
    is_active: bool = Field(default=True)
