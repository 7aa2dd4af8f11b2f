"""Tests for the loyalty ledger."""

import pytest

from app.models.reward import RewardPoint, RewardPointType


def add_points(session, user, points, type=RewardPointType.ADJUSTMENT):
    session.add(RewardPoint(user_id=user.id, points=points, type=type))
    session.commit()


class TestBalance:
    def test_balance_is_ledger_sum(self, session, reward_service, customer):
        assert reward_service.balance(session, customer.id) == 0

        add_points(session, customer, 120, RewardPointType.EARNED_PURCHASE)
        add_points(session, customer, 30, RewardPointType.EARNED_REVIEW)
        add_points(session, customer, -100, RewardPointType.REDEEMED)

        assert reward_service.balance(session, customer.id) == 50

    def test_balances_are_per_user(self, session, reward_service, customer, other_customer):
        add_points(session, customer, 40)
        assert reward_service.balance(session, other_customer.id) == 0


class TestTiers:
    @pytest.mark.parametrize(
        "balance, tier",
        [(0, "Bronze"), (499, "Bronze"), (500, "Silver"), (1499, "Silver"), (1500, "Gold")],
    )
    def test_current_tier(self, session, reward_service, reward_tiers, balance, tier):
        assert reward_service.current_tier(session, balance).name == tier

    def test_no_tiers_configured(self, session, reward_service):
        assert reward_service.current_tier(session, 1000) is None

    def test_summary(self, session, reward_service, reward_tiers, customer):
        add_points(session, customer, 600, RewardPointType.EARNED_PURCHASE)

        summary = reward_service.summary(session, customer.id)

        assert summary.balance == 600
        assert summary.tier.name == "Silver"
        assert [e.points for e in summary.entries] == [600]


class TestRedemption:
    @pytest.mark.parametrize(
        "balance, payable, expected",
        [
            (0, 10000, (0, 0.0)),
            (99, 10000, (0, 0.0)),
            (100, 10000, (100, 5000.0)),
            (250, 20000, (200, 10000.0)),
            (1000, 7000, (140, 7000.0)),
            (1000, 0, (0, 0.0)),
        ],
    )
    def test_quote_redemption(self, reward_service, balance, payable, expected):
        assert reward_service.quote_redemption(balance, payable) == expected

    def test_purchase_points_floor(self, reward_service):
        assert reward_service.purchase_points(0) == 0
        assert reward_service.purchase_points(999) == 0
        assert reward_service.purchase_points(8000) == 8
        assert reward_service.purchase_points(105500) == 105
