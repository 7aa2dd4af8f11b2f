"""Tests for order creation and the order status state machine."""

import uuid

import pytest
from sqlalchemy import DateTime
from sqlmodel import select

from app.core import email_client
from app.core.errors import (
    ConcurrentUpdateError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    UsageLimitExceededError,
    ValidationError,
)
from app.models.coupon import CouponUsage
from app.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory
from app.models.reward import RewardPoint, RewardPointType
from app.schemas.order import OrderCreate, OrderLineCreate


def checkout(zone, *lines, **extra):
    return OrderCreate(
        items=[OrderLineCreate(product_id=p.id, quantity=q) for p, q in lines],
        shipping_zone_id=zone.id,
        **extra,
    )


def count_rows(session, model):
    return len(session.exec(select(model)).all())


class TestCreateOrder:
    def test_totals_and_stock(self, session, order_service, customer, zone, make_product):
        cake = make_product(price=1000, stock=5)
        cookies = make_product(price=2500, stock=3)

        order = order_service.create_order(
            session, customer.id, checkout(zone, (cake, 2), (cookies, 1))
        )

        assert order.status == OrderStatus.PENDING
        assert order.order_number.startswith("CHK-")
        assert order.subtotal == 4500
        # 1 kg default parcel: 5000 + 1000 * 1
        assert order.shipping_fee == 6000
        assert order.discount_amount == 0
        assert order.total == order.subtotal - order.discount_amount + order.shipping_fee
        assert [(i.product_id, i.quantity, i.line_total) for i in order.items] == [
            (cake.id, 2, 2000),
            (cookies.id, 1, 2500),
        ]
        assert [h.status for h in order.history] == [OrderStatus.PENDING]

        session.refresh(cake)
        session.refresh(cookies)
        assert (cake.stock_quantity, cake.sold_count) == (3, 2)
        assert (cookies.stock_quantity, cookies.sold_count) == (2, 1)

    def test_parcel_weight_from_products(
        self, session, order_service, customer, zone, make_product
    ):
        flour = make_product(price=3000, stock=10, weight_kg=2.5)

        order = order_service.create_order(session, customer.id, checkout(zone, (flour, 2)))

        # 5 kg: 5000 + 1000 * 5
        assert order.shipping_fee == 10000
        assert order.total == 6000 + 10000

    def test_coupon_applied_and_consumed(
        self, session, order_service, customer, zone, make_product, make_coupon
    ):
        coupon = make_coupon(
            "SAVE10", max_discount_amount=5000, min_order_amount=20000, usage_limit=10
        )
        dress = make_product(price=50000, stock=4)

        order = order_service.create_order(
            session, customer.id, checkout(zone, (dress, 2), coupon_code="save10")
        )

        assert order.coupon_code == "SAVE10"
        assert order.coupon_discount == 5000
        assert order.discount_amount == 5000
        assert order.total == 100000 - 5000 + 6000

        session.refresh(coupon)
        assert coupon.usage_count == 1
        usage = session.exec(select(CouponUsage)).one()
        assert (usage.order_id, usage.user_id, usage.discount) == (order.id, customer.id, 5000)

    def test_reward_points_redeemed(
        self, session, order_service, customer, zone, make_product
    ):
        session.add(
            RewardPoint(
                user_id=customer.id, points=250, type=RewardPointType.ADJUSTMENT
            )
        )
        session.commit()
        bag = make_product(price=20000, stock=1)

        order = order_service.create_order(
            session, customer.id, checkout(zone, (bag, 1), use_reward_points=True)
        )

        # 250 points = 2 blocks of 100 = 10000 UGX, costing 200 points
        assert order.points_used == 200
        assert order.points_discount == 10000
        assert order.total == 20000 - 10000 + 6000

        redeemed = session.exec(
            select(RewardPoint).where(RewardPoint.type == RewardPointType.REDEEMED)
        ).one()
        assert redeemed.points == -200
        assert redeemed.order_id == order.id

    def test_points_never_exceed_remaining_payable(
        self, session, order_service, customer, zone, make_product
    ):
        session.add(
            RewardPoint(
                user_id=customer.id, points=1000, type=RewardPointType.ADJUSTMENT
            )
        )
        session.commit()
        candle = make_product(price=7000, stock=1)

        order = order_service.create_order(
            session, customer.id, checkout(zone, (candle, 1), use_reward_points=True)
        )

        assert order.points_discount == 7000
        assert order.points_used == 140
        assert order.total == order.shipping_fee
        assert order.total >= 0

    def test_insufficient_stock_writes_nothing(
        self, session, order_service, customer, zone, make_product
    ):
        scarce = make_product(price=1000, stock=2)

        with pytest.raises(InsufficientStockError) as exc_info:
            order_service.create_order(session, customer.id, checkout(zone, (scarce, 3)))

        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert count_rows(session, Order) == 0
        session.refresh(scarce)
        assert scarce.stock_quantity == 2

    def test_failure_mid_transaction_rolls_back(
        self, session, order_service, customer, zone, make_product, make_coupon, monkeypatch
    ):
        coupon = make_coupon("LAST1", usage_limit=1)
        mug = make_product(price=15000, stock=3)

        # Another checkout takes the last slot between validation and commit
        monkeypatch.setattr(
            order_service.discount_service.coupon_repo,
            "increment_usage",
            lambda session, coupon_id: False,
        )

        with pytest.raises(UsageLimitExceededError):
            order_service.create_order(
                session, customer.id, checkout(zone, (mug, 1), coupon_code="LAST1")
            )

        assert count_rows(session, Order) == 0
        assert count_rows(session, OrderItem) == 0
        assert count_rows(session, OrderStatusHistory) == 0
        session.refresh(mug)
        session.refresh(coupon)
        assert (mug.stock_quantity, mug.sold_count) == (3, 0)
        assert coupon.usage_count == 0

    def test_duplicate_lines_rejected(
        self, session, order_service, customer, zone, make_product
    ):
        cake = make_product()

        with pytest.raises(ValidationError):
            order_service.create_order(
                session, customer.id, checkout(zone, (cake, 1), (cake, 2))
            )

    def test_unknown_product(self, session, order_service, customer, zone):
        payload = OrderCreate(
            items=[OrderLineCreate(product_id=uuid.uuid4(), quantity=1)],
            shipping_zone_id=zone.id,
        )
        with pytest.raises(NotFoundError):
            order_service.create_order(session, customer.id, payload)

    def test_inactive_product_is_not_found(
        self, session, order_service, customer, zone, make_product
    ):
        hidden = make_product(is_active=False)
        with pytest.raises(NotFoundError):
            order_service.create_order(session, customer.id, checkout(zone, (hidden, 1)))

    def test_unknown_zone(self, session, order_service, customer, make_product):
        cake = make_product()
        payload = OrderCreate(
            items=[OrderLineCreate(product_id=cake.id, quantity=1)],
            shipping_zone_id=uuid.uuid4(),
        )
        with pytest.raises(NotFoundError):
            order_service.create_order(session, customer.id, payload)
        session.refresh(cake)
        assert cake.stock_quantity == 10


class TestTransition:
    @pytest.fixture
    def placed(self, session, order_service, customer, zone, make_product):
        product = make_product(price=1000, stock=2)
        order = order_service.create_order(session, customer.id, checkout(zone, (product, 2)))
        return order, product

    def test_cancel_restores_stock_once(self, session, order_service, staff, placed):
        order, product = placed
        session.refresh(product)
        assert (product.stock_quantity, product.sold_count) == (0, 2)

        order_service.transition(session, order.id, OrderStatus.CANCELLED, staff.id)
        order_service.transition(session, order.id, OrderStatus.CANCELLED, staff.id)

        session.refresh(product)
        assert (product.stock_quantity, product.sold_count) == (2, 0)
        statuses = [h.status for h in order_service.order_repo.list_history(session, order.id)]
        assert statuses == [OrderStatus.PENDING, OrderStatus.CANCELLED]

    def test_delivered_awards_points_once(
        self, session, order_service, reward_service, customer, staff, placed
    ):
        order, _ = placed
        for status in (
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
            OrderStatus.DELIVERED,
        ):
            updated = order_service.transition(session, order.id, status, staff.id)

        assert updated.status == OrderStatus.DELIVERED
        assert updated.delivered_at is not None
        # total 8000 -> floor(8000 / 1000)
        assert reward_service.balance(session, customer.id) == 8
        earned = session.exec(
            select(RewardPoint).where(RewardPoint.type == RewardPointType.EARNED_PURCHASE)
        ).all()
        assert len(earned) == 1

    def test_status_timestamps_and_tracking(self, session, order_service, staff, placed):
        order, _ = placed

        shipped = order_service.transition(
            session,
            order.id,
            OrderStatus.SHIPPED,
            staff.id,
            tracking_number="UG123",
            tracking_url="https://track.example.com/UG123",
        )

        assert shipped.shipped_at is not None
        assert shipped.confirmed_at is None
        assert shipped.tracking_number == "UG123"
        assert shipped.tracking_url == "https://track.example.com/UG123"

    def test_history_note_defaults(self, session, order_service, staff, placed):
        order, _ = placed
        order_service.transition(session, order.id, OrderStatus.CONFIRMED, staff.id)

        history = order_service.order_repo.list_history(session, order.id)
        assert history[-1].note == "Status changed from PENDING to CONFIRMED"
        assert history[-1].actor_id == staff.id

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    @pytest.mark.parametrize(
        "target",
        [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED],
    )
    def test_terminal_states_are_final(
        self, session, order_service, staff, placed, terminal, target
    ):
        order, _ = placed
        order_service.transition(session, order.id, terminal, staff.id)

        with pytest.raises(InvalidTransitionError):
            order_service.transition(session, order.id, target, staff.id)

    def test_cannot_cancel_delivered(self, session, order_service, staff, placed):
        order, product = placed
        order_service.transition(session, order.id, OrderStatus.DELIVERED, staff.id)

        with pytest.raises(InvalidTransitionError):
            order_service.transition(session, order.id, OrderStatus.CANCELLED, staff.id)
        session.refresh(product)
        assert product.stock_quantity == 0

    def test_lost_compare_and_swap(self, session, order_service, staff, placed, monkeypatch):
        order, product = placed
        monkeypatch.setattr(
            order_service.order_repo,
            "compare_and_set_status",
            lambda *args, **kwargs: False,
        )

        with pytest.raises(ConcurrentUpdateError):
            order_service.transition(session, order.id, OrderStatus.CANCELLED, staff.id)

        session.refresh(product)
        assert product.stock_quantity == 0
        assert len(order_service.order_repo.list_history(session, order.id)) == 1

    def test_unknown_order(self, session, order_service, staff):
        with pytest.raises(NotFoundError):
            order_service.transition(session, uuid.uuid4(), OrderStatus.CONFIRMED, staff.id)

    def test_notification_failure_does_not_fail_transition(
        self, session, order_service, staff, placed, monkeypatch
    ):
        order, _ = placed

        def broken_send(**kwargs):
            raise RuntimeError("SMTP down")

        monkeypatch.setattr(email_client, "is_configured", lambda: True)
        monkeypatch.setattr(email_client, "send_email", broken_send)

        updated = order_service.transition(session, order.id, OrderStatus.CONFIRMED, staff.id)

        assert updated.status == OrderStatus.CONFIRMED


class TestReads:
    def test_user_cannot_read_foreign_order(
        self, session, order_service, customer, other_customer, zone, make_product
    ):
        order = order_service.create_order(
            session, customer.id, checkout(zone, (make_product(), 1))
        )

        assert order_service.get_user_order(session, customer.id, order.id).id == order.id
        with pytest.raises(NotFoundError):
            order_service.get_user_order(session, other_customer.id, order.id)

    def test_track_by_number(self, session, order_service, customer, zone, make_product):
        order = order_service.create_order(
            session, customer.id, checkout(zone, (make_product(), 1))
        )

        tracking = order_service.track(session, order.order_number.lower())

        assert tracking.order_number == order.order_number
        assert tracking.status == OrderStatus.PENDING
        assert len(tracking.history) == 1

    def test_list_user_orders_filters_status(
        self, session, order_service, customer, staff, zone, make_product
    ):
        first = order_service.create_order(
            session, customer.id, checkout(zone, (make_product(), 1))
        )
        order_service.create_order(session, customer.id, checkout(zone, (make_product(), 1)))
        order_service.transition(session, first.id, OrderStatus.CANCELLED, staff.id)

        assert len(order_service.list_user_orders(session, customer.id)) == 2
        cancelled = order_service.list_user_orders(
            session, customer.id, status=OrderStatus.CANCELLED
        )
        assert [o.id for o in cancelled] == [first.id]


class TestTimestamps:
    def test_status_timestamps_are_stored_naive_utc(
        self, session, order_service, customer, staff, zone, make_product
    ):
        order = order_service.create_order(
            session, customer.id, checkout(zone, (make_product(), 1))
        )

        confirmed = order_service.transition(session, order.id, OrderStatus.CONFIRMED, staff.id)

        assert confirmed.created_at.tzinfo is None
        assert confirmed.confirmed_at.tzinfo is None
        assert confirmed.confirmed_at >= confirmed.created_at

    @pytest.mark.parametrize(
        "column",
        [
            Order.__table__.c.created_at,
            Order.__table__.c.delivered_at,
            CouponUsage.__table__.c.created_at,
            RewardPoint.__table__.c.created_at,
        ],
    )
    def test_timestamp_columns_carry_no_timezone(self, column):
        assert isinstance(column.type, DateTime)
        assert column.type.timezone is False
