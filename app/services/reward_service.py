import logging
import math
import uuid

from sqlmodel import Session, select

from app.core.config import get_settings
from app.core.utils import floor_div
from app.models.order import Order
from app.models.reward import RewardPoint, RewardPointType, RewardTier
from app.models.user import User
from app.repositories.reward_repo import RewardRepository
from app.schemas.reward import RewardEntryRead, RewardSummary, RewardTierRead

logger = logging.getLogger(__name__)


class RewardService:
    """
    Loyalty ledger.

    Responsibilities:
      - derive balances from the append-only ledger
      - award purchase points for delivered orders (once per order)
      - price and record point redemptions at checkout
    """

    def __init__(self, repo: RewardRepository):
        self.repo = repo
        settings = get_settings()
        self.points_per_currency_unit = settings.POINTS_PER_CURRENCY_UNIT
        self.redemption_block = settings.POINTS_REDEMPTION_BLOCK
        self.redemption_value = settings.POINTS_REDEMPTION_VALUE
        self.point_value = settings.POINT_VALUE

    # -------- Reads --------

    def balance(self, session: Session, user_id: uuid.UUID) -> int:
        return self.repo.balance(session, user_id)

    def current_tier(self, session: Session, balance: int) -> RewardTier | None:
        """Highest active tier whose threshold the balance reaches."""
        tier = None
        for candidate in self.repo.list_tiers(session):
            if candidate.min_points <= balance:
                tier = candidate
        return tier

    def list_tiers(self, session: Session) -> list[RewardTier]:
        return self.repo.list_tiers(session)

    def ledger(self, session: Session, user_id: uuid.UUID, limit: int = 50) -> list[RewardPoint]:
        """Latest ledger entries, newest first."""
        return self.repo.list_for_user(session, user_id, limit)

    def summary(self, session: Session, user_id: uuid.UUID) -> RewardSummary:
        balance = self.balance(session, user_id)
        tier = self.current_tier(session, balance)
        return RewardSummary(
            balance=balance,
            tier=RewardTierRead.model_validate(tier, from_attributes=True) if tier else None,
            entries=[
                RewardEntryRead.model_validate(e, from_attributes=True)
                for e in self.ledger(session, user_id)
            ],
        )

    # -------- Earning --------

    def purchase_points(self, total: float) -> int:
        return floor_div(total, self.points_per_currency_unit)

    def award_purchase(self, session: Session, order: Order) -> RewardPoint | None:
        """
        Record the EARNED_PURCHASE entry for a delivered order.

        No commit: runs inside the transition transaction. Returns None when
        the order earns nothing or already has its entry.
        """
        points = self.purchase_points(order.total)
        if points <= 0:
            return None

        if self.repo.get_for_order(session, order.id, RewardPointType.EARNED_PURCHASE):
            logger.warning("Order %s already earned its purchase points", order.order_number)
            return None

        entry = RewardPoint(
            user_id=order.user_id,
            points=points,
            type=RewardPointType.EARNED_PURCHASE,
            description=f"Points earned from order {order.order_number}",
            order_id=order.id,
        )
        return self.repo.add(session, entry)

    # -------- Redemption --------

    def quote_redemption(self, balance: int, payable: float) -> tuple[int, float]:
        """
        (points_used, discount) for spending `balance` against `payable`.

        Points are spent in blocks (100 points = 5000 UGX); the discount
        never exceeds what is left to pay.
        """
        if balance <= 0 or payable <= 0:
            return 0, 0.0
        max_discount = (balance // self.redemption_block) * self.redemption_value
        discount = float(min(max_discount, payable))
        if discount <= 0:
            return 0, 0.0
        points_used = math.ceil(discount / self.point_value)
        return points_used, discount

    def lock_balance(self, session: Session, user_id: uuid.UUID) -> int:
        """
        Lock the user's row for the rest of the transaction, then read the
        balance, so two checkouts cannot spend the same points.
        """
        session.exec(select(User).where(User.id == user_id).with_for_update()).first()
        return self.repo.balance(session, user_id)

    def redeem_for_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order: Order,
        points: int,
    ) -> RewardPoint:
        entry = RewardPoint(
            user_id=user_id,
            points=-points,
            type=RewardPointType.REDEEMED,
            description=f"Redeemed for order {order.order_number}",
            order_id=order.id,
        )
        return self.repo.add(session, entry)
