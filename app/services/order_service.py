import logging
import uuid

from sqlmodel import Session

from app.core.errors import (
    ConcurrentUpdateError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.utils import reference_number, utcnow
from app.models.order import (
    ORDER_STATUS_TIMESTAMPS,
    TERMINAL_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
)
from app.models.product import Product
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderLineCreate,
    OrderRead,
    OrderStatusHistoryRead,
    OrderTrackingRead,
    OrderWithItemsRead,
)
from app.services.discount_service import DiscountService
from app.services.notification_service import NotificationService
from app.services.reward_service import RewardService
from app.services.shipping_service import ShippingService

logger = logging.getLogger(__name__)

# Re-read and retry when a concurrent request moves the order first
MAX_TRANSITION_ATTEMPTS = 3


class OrderService:
    """
    Order lifecycle manager.

    Responsibilities:
      - Create orders: price items from the catalog, apply coupon and
        reward points, quote shipping, take stock, all in one transaction
      - Drive the status state machine with compare-and-swap updates
      - Apply status side effects exactly once:
          CANCELLED -> restore stock / sold count
          DELIVERED -> award purchase points
      - Keep the append-only status history
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        discount_service: DiscountService,
        shipping_service: ShippingService,
        reward_service: RewardService,
        notifier: NotificationService,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.discount_service = discount_service
        self.shipping_service = shipping_service
        self.reward_service = reward_service
        self.notifier = notifier

    # -------- Creation --------

    def create_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Place an order for `user_id`.

        Steps:
          1. Validate lines (no duplicates), load active products.
          2. Check stock for every line; fail before writing anything.
          3. subtotal = sum(price * quantity) from catalog prices.
          4. Quote shipping for the parcel weight.
          5. Validate the coupon against the subtotal.
          6. Price reward point redemption against what is left.
          7. Insert order (PENDING), items, initial history entry.
          8. Take stock, consume the coupon, record redeemed points.
          9. Commit; any failure rolls back steps 7-8 entirely.
        """
        lines = payload.items
        if not lines:
            raise ValidationError("Cart is empty")

        product_ids = [line.product_id for line in lines]
        if len(set(product_ids)) != len(product_ids):
            raise ValidationError("Each product may appear only once per order")

        try:
            # 1) Products
            products = self.product_repo.get_many(session, product_ids)
            for pid in product_ids:
                if pid not in products:
                    raise NotFoundError("Product", pid)

            # 2) Stock pre-check
            for line in lines:
                product = products[line.product_id]
                if line.quantity > product.stock_quantity:
                    raise InsufficientStockError(
                        product.id, product.stock_quantity, line.quantity
                    )

            # 3) Subtotal
            subtotal = sum(products[line.product_id].price * line.quantity for line in lines)

            # 4) Shipping
            weight = self._parcel_weight(lines, products)
            shipping = self.shipping_service.calculate(
                session, payload.shipping_zone_id, weight
            )

            # 5) Coupon
            coupon_quote = None
            coupon_discount = 0.0
            if payload.coupon_code:
                coupon_quote = self.discount_service.validate_coupon(
                    session, payload.coupon_code, subtotal, user_id
                )
                coupon_discount = coupon_quote.discount

            # 6) Reward points
            points_used, points_discount = 0, 0.0
            if payload.use_reward_points:
                balance = self.reward_service.lock_balance(session, user_id)
                points_used, points_discount = self.reward_service.quote_redemption(
                    balance, subtotal - coupon_discount
                )

            discount = coupon_discount + points_discount
            total = subtotal - discount + shipping.shipping_fee

            # 7) Order, items, history
            order = self.order_repo.create_order(
                session,
                Order(
                    order_number=reference_number("CHK", 4),
                    user_id=user_id,
                    status=OrderStatus.PENDING,
                    subtotal=subtotal,
                    discount_amount=discount,
                    shipping_fee=shipping.shipping_fee,
                    total=total,
                    coupon_id=coupon_quote.coupon_id if coupon_quote else None,
                    coupon_code=coupon_quote.code if coupon_quote else None,
                    coupon_discount=coupon_discount,
                    points_used=points_used,
                    points_discount=points_discount,
                    shipping_zone_id=shipping.zone_id,
                    parcel_weight_kg=shipping.weight_kg,
                    estimated_delivery_days=shipping.estimated_days,
                    note=payload.note,
                ),
            )

            self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        position=position,
                        product_name=products[line.product_id].name,
                        quantity=line.quantity,
                        unit_price=products[line.product_id].price,
                    )
                    for position, line in enumerate(lines)
                ],
            )

            self.order_repo.add_history(
                session,
                OrderStatusHistory(
                    order_id=order.id,
                    status=OrderStatus.PENDING,
                    note="Order placed",
                    actor_id=user_id,
                ),
            )

            # 8) Side effects of placing the order
            for line in lines:
                if not self.product_repo.reserve_stock(session, line.product_id, line.quantity):
                    # Another checkout took the stock after our pre-check
                    current = self.product_repo.get_many(session, [line.product_id])
                    available = (
                        current[line.product_id].stock_quantity
                        if line.product_id in current
                        else 0
                    )
                    raise InsufficientStockError(line.product_id, available, line.quantity)

            if coupon_quote is not None:
                self.discount_service.redeem_coupon(session, coupon_quote, user_id, order.id)

            if points_used > 0:
                self.reward_service.redeem_for_order(session, user_id, order, points_used)

            # 9) Commit
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(order)
        logger.info(
            "Order %s placed by %s: subtotal=%s discount=%s shipping=%s total=%s",
            order.order_number,
            user_id,
            order.subtotal,
            order.discount_amount,
            order.shipping_fee,
            order.total,
        )
        self.notifier.order_status_changed(session, order)
        return self._build_order_with_items_dto(session, order)

    def _parcel_weight(
        self,
        lines: list[OrderLineCreate],
        products: dict[uuid.UUID, Product],
    ) -> float | None:
        """
        Sum of unit weight * quantity over products that declare a weight.
        None when no product does (the shipping default applies).
        """
        weighed = [
            products[line.product_id].weight_kg * line.quantity
            for line in lines
            if products[line.product_id].weight_kg is not None
        ]
        if not weighed:
            return None
        return sum(weighed)

    # -------- Lifecycle --------

    def transition(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        actor_id: uuid.UUID | None,
        note: str | None = None,
        tracking_number: str | None = None,
        tracking_url: str | None = None,
    ) -> Order:
        """
        Move an order to `new_status`.

        - Same status as stored: no-op, returns the order unchanged.
        - Stored status DELIVERED or CANCELLED: InvalidTransitionError.
        - Otherwise: CAS on the observed status, stamp the status timestamp,
          append history, apply side effects, commit, notify.

        The CAS guarantees that side effects for a given (order, status)
        run at most once even when identical requests race or are retried.
        """
        for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
            try:
                order = self.order_repo.get_by_id(session, order_id, for_update=True)
                if order is None:
                    raise NotFoundError("Order", order_id)

                current = order.status
                if current == new_status:
                    session.rollback()
                    return order

                if current in TERMINAL_ORDER_STATUSES:
                    raise InvalidTransitionError(current.value, new_status.value)

                values: dict[str, object] = {"status": new_status}
                stamp = ORDER_STATUS_TIMESTAMPS.get(new_status)
                if stamp:
                    values[stamp] = utcnow()
                if tracking_number:
                    values["tracking_number"] = tracking_number
                if tracking_url:
                    values["tracking_url"] = tracking_url

                if not self.order_repo.compare_and_set_status(
                    session, order.id, current, values
                ):
                    session.rollback()
                    logger.warning(
                        "Order %s changed concurrently (attempt %s/%s)",
                        order_id,
                        attempt,
                        MAX_TRANSITION_ATTEMPTS,
                    )
                    continue

                self.order_repo.add_history(
                    session,
                    OrderStatusHistory(
                        order_id=order.id,
                        status=new_status,
                        note=note or f"Status changed from {current.value} to {new_status.value}",
                        actor_id=actor_id,
                    ),
                )

                self._apply_side_effects(session, order, new_status)

                session.commit()
            except Exception:
                session.rollback()
                raise

            session.refresh(order)
            logger.info(
                "Order %s: %s -> %s by %s",
                order.order_number,
                current.value,
                new_status.value,
                actor_id,
            )
            self.notifier.order_status_changed(session, order)
            return order

        raise ConcurrentUpdateError(
            f"Order {order_id} is being updated by another request; please retry"
        )

    def _apply_side_effects(
        self,
        session: Session,
        order: Order,
        new_status: OrderStatus,
    ) -> None:
        if new_status == OrderStatus.CANCELLED:
            for item in self.order_repo.list_items_for_order(session, order.id):
                self.product_repo.adjust_stock(session, item.product_id, item.quantity)
                self.product_repo.adjust_sold_count(session, item.product_id, -item.quantity)
        elif new_status == OrderStatus.DELIVERED:
            self.reward_service.award_purchase(session, order)

    # -------- User-facing reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
        status: OrderStatus | None = None,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items).
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit, status)
        return orders  # type: ignore[return-value]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - NotFoundError if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise NotFoundError("Order", order_id)
        return self._build_order_with_items_dto(session, order)

    def track(self, session: Session, order_number: str) -> OrderTrackingRead:
        """
        Public tracking by order number.
        """
        order = self.order_repo.get_by_number(session, order_number.strip().upper())
        if not order:
            raise NotFoundError("Order", order_number)
        return OrderTrackingRead(
            order_number=order.order_number,
            status=order.status,
            created_at=order.created_at,
            estimated_delivery_days=order.estimated_delivery_days,
            tracking_number=order.tracking_number,
            history=self._history_dtos(session, order.id),
        )

    # -------- Admin reads --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: OrderStatus | None = None,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_all(session, skip, limit, status)
        return orders  # type: ignore[return-value]

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return self._build_order_with_items_dto(session, order)

    # -------- Helper DTO builders --------

    def _history_dtos(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderStatusHistoryRead]:
        return [
            OrderStatusHistoryRead(
                status=h.status,
                note=h.note,
                actor_id=h.actor_id,
                created_at=h.created_at,
            )
            for h in self.order_repo.list_history(session, order_id)
        ]

    def _build_order_with_items_dto(
        self,
        session: Session,
        order: Order,
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models, including line totals
        and the status timeline.
        """
        items = [
            OrderItemRead(
                id=it.id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=it.quantity * it.unit_price,
            )
            for it in self.order_repo.list_items_for_order(session, order.id)
        ]

        base = OrderRead.model_validate(order, from_attributes=True)
        return OrderWithItemsRead(
            **base.model_dump(),
            items=items,
            history=self._history_dtos(session, order.id),
        )
