import uuid

from sqlmodel import Session, select

from app.models.shipping import ShippingZone


class ShippingRepository:
    def get_active(self, session: Session, zone_id: uuid.UUID) -> ShippingZone | None:
        stmt = select(ShippingZone).where(
            ShippingZone.id == zone_id,
            ShippingZone.is_active == True,  # noqa: E712
        )
        return session.exec(stmt).first()

    def list_active(self, session: Session) -> list[ShippingZone]:
        stmt = (
            select(ShippingZone)
            .where(ShippingZone.is_active == True)  # noqa: E712
            .order_by(ShippingZone.region, ShippingZone.distance_km)
        )
        return list(session.exec(stmt).all())
