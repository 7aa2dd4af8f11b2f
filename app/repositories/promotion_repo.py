import uuid
from datetime import datetime

from sqlmodel import Session, select

from app.models.promotion import Promotion, PromotionProduct


class PromotionRepository:
    """
    Read-only queries for promotions.
    """

    def list_active(self, session: Session, now: datetime) -> list[Promotion]:
        stmt = (
            select(Promotion)
            .where(
                Promotion.is_active == True,  # noqa: E712
                Promotion.start_date <= now,
                Promotion.end_date >= now,
            )
            .order_by(Promotion.end_date)
        )
        return list(session.exec(stmt).all())

    def product_ids_by_promotion(
        self,
        session: Session,
        promotion_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[uuid.UUID]]:
        """
        Eligible product ids per promotion, in curated order.
        """
        if not promotion_ids:
            return {}
        stmt = (
            select(PromotionProduct)
            .where(PromotionProduct.promotion_id.in_(promotion_ids))
            .order_by(PromotionProduct.promotion_id, PromotionProduct.position)
        )
        grouped: dict[uuid.UUID, list[uuid.UUID]] = {pid: [] for pid in promotion_ids}
        for row in session.exec(stmt).all():
            grouped[row.promotion_id].append(row.product_id)
        return grouped
