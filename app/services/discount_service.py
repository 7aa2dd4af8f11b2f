import logging
import uuid
from datetime import datetime

from sqlmodel import Session

from app.core.errors import (
    InactiveError,
    MinimumNotMetError,
    NotFoundError,
    UsageLimitExceededError,
)
from app.core.utils import round_currency, utcnow
from app.models.coupon import Coupon, CouponUsage, DiscountType
from app.repositories.coupon_repo import CouponRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.promotion_repo import PromotionRepository
from app.schemas.coupon import CouponQuote
from app.schemas.promotion import ActivePromotion, PromotedProduct

logger = logging.getLogger(__name__)


def compute_discount(coupon: Coupon, order_total: float) -> float:
    """
    Discount granted by `coupon` on `order_total`.

      PERCENTAGE: round(total * value / 100), capped at max_discount_amount
      FIXED:      min(value, total)

    Never exceeds the order total.
    """
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = round_currency(order_total * coupon.discount_value / 100)
        if coupon.max_discount_amount is not None:
            discount = min(discount, coupon.max_discount_amount)
    else:
        discount = coupon.discount_value
    return max(0.0, min(discount, order_total))


class DiscountService:
    """
    Coupons and time-boxed promotions.

    Responsibilities:
      - validate a coupon against an order total (read-only)
      - consume a coupon usage slot atomically, inside the caller's
        order transaction
      - resolve currently running promotions to discounted products
    """

    def __init__(
        self,
        coupon_repo: CouponRepository,
        promotion_repo: PromotionRepository,
        product_repo: ProductRepository,
    ):
        self.coupon_repo = coupon_repo
        self.promotion_repo = promotion_repo
        self.product_repo = product_repo

    # -------- Coupons --------

    def validate_coupon(
        self,
        session: Session,
        code: str,
        order_total: float,
        user_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> CouponQuote:
        """
        Check that `code` applies to an order of `order_total` and compute
        the discount. Does not touch usage_count.

        Raises:
            NotFoundError: unknown code.
            InactiveError: disabled or outside [start_date, end_date].
            UsageLimitExceededError: global or per-user limit reached.
            MinimumNotMetError: order_total below min_order_amount.
        """
        now = now or utcnow()

        coupon = self.coupon_repo.get_by_code(session, code)
        if coupon is None:
            raise NotFoundError("Coupon", code.strip().upper())

        if not coupon.is_active:
            raise InactiveError("This coupon is no longer active")

        if coupon.end_date is not None and coupon.end_date < now:
            raise InactiveError("This coupon has expired")

        if coupon.start_date is not None and coupon.start_date > now:
            raise InactiveError("This coupon is not yet active")

        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise UsageLimitExceededError("This coupon has reached its usage limit")

        if coupon.per_user_limit is not None and user_id is not None:
            used = self.coupon_repo.count_user_usages(session, coupon.id, user_id)
            if used >= coupon.per_user_limit:
                raise UsageLimitExceededError(
                    "You have already used this coupon the maximum number of times"
                )

        if coupon.min_order_amount is not None and order_total < coupon.min_order_amount:
            raise MinimumNotMetError(coupon.min_order_amount)

        return CouponQuote(
            coupon_id=coupon.id,
            code=coupon.code,
            type=coupon.discount_type,
            value=coupon.discount_value,
            discount=compute_discount(coupon, order_total),
            description=coupon.description,
        )

    def redeem_coupon(
        self,
        session: Session,
        quote: CouponQuote,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> None:
        """
        Consume one usage of a validated coupon for `order_id`.

        Runs inside the order-creation transaction; the caller commits or
        rolls back. The conditional increment makes two concurrent
        checkouts racing for the last slot resolve to one winner.

        Raises:
            UsageLimitExceededError: no usage slot left.
        """
        if not self.coupon_repo.increment_usage(session, quote.coupon_id):
            logger.warning("Coupon %s lost the race for its last usage slot", quote.code)
            raise UsageLimitExceededError("This coupon has reached its usage limit")

        self.coupon_repo.add_usage(
            session,
            CouponUsage(
                coupon_id=quote.coupon_id,
                user_id=user_id,
                order_id=order_id,
                discount=quote.discount,
            ),
        )

    # -------- Promotions --------

    def active_promotions(
        self,
        session: Session,
        now: datetime | None = None,
    ) -> list[ActivePromotion]:
        """
        Promotions running at `now`, each with its eligible active products
        and their discounted prices. Read-only.
        """
        now = now or utcnow()

        promotions = self.promotion_repo.list_active(session, now)
        product_ids = self.promotion_repo.product_ids_by_promotion(
            session, [p.id for p in promotions]
        )

        all_ids = list({pid for ids in product_ids.values() for pid in ids})
        products = self.product_repo.get_many(session, all_ids)

        result: list[ActivePromotion] = []
        for promo in promotions:
            promoted: list[PromotedProduct] = []
            for pid in product_ids.get(promo.id, []):
                product = products.get(pid)
                if product is None:
                    # Deleted or deactivated since the promotion was curated
                    continue
                promoted.append(
                    PromotedProduct(
                        id=product.id,
                        name=product.name,
                        slug=product.slug,
                        original_price=product.price,
                        price=round_currency(
                            product.price * (100 - promo.discount_pct) / 100
                        ),
                    )
                )
            result.append(
                ActivePromotion(
                    id=promo.id,
                    name=promo.name,
                    description=promo.description,
                    type=promo.type,
                    discount_pct=promo.discount_pct,
                    end_date=promo.end_date,
                    products=promoted,
                )
            )
        return result
