from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.repositories.shipping_repo import ShippingRepository
from app.schemas.shipping import ShippingCalculateRequest, ShippingQuote, ShippingZoneList
from app.services.shipping_service import ShippingService

router = APIRouter(prefix="/shipping", tags=["Shipping"])

service = ShippingService(ShippingRepository())


@router.get("/zones", response_model=ShippingZoneList)
def list_shipping_zones(session: Session = Depends(get_session)):
    """
    Active shipping zones for checkout, also grouped by region.
    """
    return service.list_zones(session)


@router.post("/calculate", response_model=ShippingQuote)
def calculate_shipping(
    payload: ShippingCalculateRequest,
    session: Session = Depends(get_session),
):
    """
    Quote the delivery fee for a zone and parcel weight (1 kg by default).
    """
    return service.calculate(session, payload.zone_id, payload.weight_kg)
