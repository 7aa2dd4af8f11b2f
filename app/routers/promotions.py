from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.repositories.coupon_repo import CouponRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.promotion_repo import PromotionRepository
from app.schemas.promotion import ActivePromotion
from app.services.discount_service import DiscountService

router = APIRouter(prefix="/promotions", tags=["Promotions"])

service = DiscountService(CouponRepository(), PromotionRepository(), ProductRepository())


@router.get("/active", response_model=list[ActivePromotion])
def list_active_promotions(session: Session = Depends(get_session)):
    """
    Currently running promotions with their discounted products (public).
    """
    return service.active_promotions(session)
