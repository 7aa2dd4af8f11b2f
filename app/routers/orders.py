import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_staff, require_user
from app.database import get_session
from app.models.order import OrderStatus
from app.models.user import User
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.promotion_repo import PromotionRepository
from app.repositories.reward_repo import RewardRepository
from app.repositories.shipping_repo import ShippingRepository
from app.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
    OrderTrackingRead,
    OrderWithItemsRead,
)
from app.services.discount_service import DiscountService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.reward_service import RewardService
from app.services.shipping_service import ShippingService

router = APIRouter(prefix="/orders", tags=["Orders"])

product_repo = ProductRepository()
service = OrderService(
    order_repo=OrderRepository(),
    product_repo=product_repo,
    discount_service=DiscountService(CouponRepository(), PromotionRepository(), product_repo),
    shipping_service=ShippingService(ShippingRepository()),
    reward_service=RewardService(RewardRepository()),
    notifier=NotificationService(),
)


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=OrderWithItemsRead,
    status_code=201,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Place an order.

    Auth:
      - Only role='user' (customer) can checkout.
    """
    return service.create_order(session, current_user.id, payload)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items).
    """
    return service.list_user_orders(session, current_user.id, skip, limit, status)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get a single order (with items and timeline) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


@router.get(
    "/track",
    response_model=OrderTrackingRead,
)
def track_order(
    order_number: str,
    session: Session = Depends(get_session),
):
    """
    Public order tracking by order number (no auth required).
    """
    return service.track(session, order_number)


# -------- Staff endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_staff)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (staff only).
    """
    return service.list_all_orders(session, skip, limit, status)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_staff)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items (staff only).
    """
    return service.get_order_admin(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_staff),
):
    """
    Update order status (staff only).

      Any non-terminal status -> any other status

      DELIVERED, CANCELLED -> (terminal, 409)

      Entering CANCELLED restores stock; entering DELIVERED awards points.
    """
    return service.transition(
        session,
        order_id,
        payload.status,
        actor_id=current_user.id,
        note=payload.note,
        tracking_number=payload.tracking_number,
        tracking_url=payload.tracking_url,
    )
