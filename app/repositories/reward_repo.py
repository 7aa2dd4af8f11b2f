import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.reward import RewardPoint, RewardPointType, RewardTier


class RewardRepository:
    """
    Append-only access to the loyalty ledger, plus tier lookups.
    """

    def balance(self, session: Session, user_id: uuid.UUID) -> int:
        stmt = select(func.coalesce(func.sum(RewardPoint.points), 0)).where(
            RewardPoint.user_id == user_id
        )
        return int(session.exec(stmt).one() or 0)

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        limit: int = 50,
    ) -> list[RewardPoint]:
        stmt = (
            select(RewardPoint)
            .where(RewardPoint.user_id == user_id)
            .order_by(RewardPoint.created_at.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def get_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        type: RewardPointType,
    ) -> RewardPoint | None:
        stmt = select(RewardPoint).where(
            RewardPoint.order_id == order_id,
            RewardPoint.type == type,
        )
        return session.exec(stmt).first()

    def add(self, session: Session, entry: RewardPoint) -> RewardPoint:
        session.add(entry)
        session.flush()
        return entry

    def list_tiers(self, session: Session) -> list[RewardTier]:
        stmt = (
            select(RewardTier)
            .where(RewardTier.is_active == True)  # noqa: E712
            .order_by(RewardTier.min_points)
        )
        return list(session.exec(stmt).all())
