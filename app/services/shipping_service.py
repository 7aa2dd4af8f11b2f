import uuid

from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import NotFoundError, ValidationError
from app.core.utils import round_currency
from app.repositories.shipping_repo import ShippingRepository
from app.schemas.shipping import ShippingQuote, ShippingZoneList, ShippingZoneRead


class ShippingService:
    """
    Shipping fee calculator.

      fee = round(base_fee + per_kg_fee * weight_kg)

    Pure function of its inputs plus the zone row: no writes, no caching.
    """

    def __init__(self, repo: ShippingRepository):
        self.repo = repo
        self.default_weight_kg = get_settings().DEFAULT_PARCEL_WEIGHT_KG

    def calculate(
        self,
        session: Session,
        zone_id: uuid.UUID,
        weight_kg: float | None = None,
    ) -> ShippingQuote:
        """
        Quote a delivery to `zone_id`.

        Raises:
            NotFoundError: zone missing or inactive.
            ValidationError: negative weight.
        """
        if weight_kg is None:
            weight_kg = self.default_weight_kg
        if weight_kg < 0:
            raise ValidationError("Parcel weight cannot be negative")

        zone = self.repo.get_active(session, zone_id)
        if zone is None:
            raise NotFoundError("Shipping zone", zone_id)

        fee = round_currency(zone.base_fee + zone.per_kg_fee * weight_kg)

        return ShippingQuote(
            zone_id=zone.id,
            zone_name=zone.name,
            district=zone.district,
            distance_km=zone.distance_km,
            weight_kg=weight_kg,
            shipping_fee=fee,
            estimated_days=zone.estimated_days,
        )

    def list_zones(self, session: Session) -> ShippingZoneList:
        """
        Active zones for checkout, also grouped by region.
        """
        zones = [
            ShippingZoneRead.model_validate(z, from_attributes=True)
            for z in self.repo.list_active(session)
        ]
        grouped: dict[str, list[ShippingZoneRead]] = {}
        for zone in zones:
            grouped.setdefault(zone.region or "Other", []).append(zone)
        return ShippingZoneList(zones=zones, grouped=grouped)
