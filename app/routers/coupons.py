from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import get_current_user
from app.database import get_session
from app.models.user import User
from app.repositories.coupon_repo import CouponRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.promotion_repo import PromotionRepository
from app.schemas.coupon import CouponQuote, CouponValidateRequest
from app.services.discount_service import DiscountService

router = APIRouter(prefix="/coupons", tags=["Coupons"])

service = DiscountService(CouponRepository(), PromotionRepository(), ProductRepository())


@router.post("/validate", response_model=CouponQuote)
def validate_coupon(
    payload: CouponValidateRequest,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Check a coupon code against a cart total and return the discount.

    Guests may validate; per-user limits are only checked when signed in.
    Usage is consumed at checkout, not here.
    """
    return service.validate_coupon(
        session,
        payload.code,
        payload.order_total,
        user_id=current_user.id if current_user else None,
    )
