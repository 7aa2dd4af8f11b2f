import uuid

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from app.models.coupon import Coupon, CouponUsage


class CouponRepository:
    """
    Data access layer for coupons and their usage rows. No commits.
    """

    def get_by_code(self, session: Session, code: str) -> Coupon | None:
        """Case-insensitive lookup, whatever case the code was stored in."""
        stmt = (
            select(Coupon)
            .where(func.upper(Coupon.code) == code.strip().upper())
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def count_user_usages(
        self,
        session: Session,
        coupon_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(CouponUsage)
            .where(CouponUsage.coupon_id == coupon_id, CouponUsage.user_id == user_id)
        )
        return int(session.exec(stmt).one() or 0)

    def increment_usage(self, session: Session, coupon_id: uuid.UUID) -> bool:
        """
        usage_count += 1 unless the limit is already reached.

        Returns False when the guard fails (no usage slot left).
        """
        stmt = (
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                or_(
                    Coupon.usage_limit.is_(None),
                    Coupon.usage_count < Coupon.usage_limit,
                ),
            )
            .values(usage_count=Coupon.usage_count + 1)
        )
        result = session.exec(stmt)
        return result.rowcount == 1

    def add_usage(self, session: Session, usage: CouponUsage) -> CouponUsage:
        session.add(usage)
        session.flush()
        return usage
