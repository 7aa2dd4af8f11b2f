import uuid
from datetime import datetime

from sqlmodel import SQLModel

from app.models.reward import RewardPointType


class RewardTierRead(SQLModel):
    id: uuid.UUID
    name: str
    min_points: int
    points_multiplier: float


class RewardEntryRead(SQLModel):
    id: uuid.UUID
    points: int
    type: RewardPointType
    description: str | None
    order_id: uuid.UUID | None
    created_at: datetime


class RewardSummary(SQLModel):
    """
    Balance is always derived from the ledger.
    """

    balance: int
    tier: RewardTierRead | None
    entries: list[RewardEntryRead]
