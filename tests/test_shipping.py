"""Tests for the shipping fee calculator."""

import uuid

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.models.shipping import ShippingZone


def test_fee_for_weight(session, shipping_service, zone):
    quote = shipping_service.calculate(session, zone.id, 3)

    assert quote.shipping_fee == 5000 + 1000 * 3
    assert quote.zone_name == "Kampala Central"
    assert quote.district == "Kampala"
    assert quote.estimated_days == 1


def test_default_weight_is_one_kg(session, shipping_service, zone):
    quote = shipping_service.calculate(session, zone.id)

    assert quote.weight_kg == 1.0
    assert quote.shipping_fee == 6000


def test_fee_rounds_to_whole_units(session, shipping_service):
    upcountry = ShippingZone(
        name="Jinja", district="Jinja", region="Eastern", base_fee=5000, per_kg_fee=333
    )
    session.add(upcountry)
    session.commit()

    # 5000 + 333 * 1.5 = 5499.5
    assert shipping_service.calculate(session, upcountry.id, 1.5).shipping_fee == 5500


def test_fee_non_decreasing_in_weight(session, shipping_service, zone):
    weights = [0, 0.1, 0.5, 1, 1.25, 2, 7.5, 20]
    fees = [shipping_service.calculate(session, zone.id, w).shipping_fee for w in weights]
    assert fees == sorted(fees)


def test_zero_weight_pays_base_fee(session, shipping_service, zone):
    assert shipping_service.calculate(session, zone.id, 0).shipping_fee == 5000


def test_negative_weight_rejected(session, shipping_service, zone):
    with pytest.raises(ValidationError):
        shipping_service.calculate(session, zone.id, -1)


def test_unknown_zone(session, shipping_service):
    with pytest.raises(NotFoundError):
        shipping_service.calculate(session, uuid.uuid4(), 1)


def test_inactive_zone(session, shipping_service, zone):
    zone.is_active = False
    session.add(zone)
    session.commit()

    with pytest.raises(NotFoundError):
        shipping_service.calculate(session, zone.id, 1)


def test_list_zones_grouped_by_region(session, shipping_service, zone):
    session.add_all(
        [
            ShippingZone(
                name="Entebbe", district="Wakiso", region="Central",
                distance_km=40, base_fee=8000, per_kg_fee=1500,
            ),
            ShippingZone(
                name="Gulu", district="Gulu", region="Northern",
                distance_km=330, base_fee=20000, per_kg_fee=3000, estimated_days=3,
            ),
            ShippingZone(
                name="Closed", district="Mbale", region="Eastern",
                base_fee=15000, is_active=False,
            ),
        ]
    )
    session.commit()

    result = shipping_service.list_zones(session)

    assert [z.name for z in result.zones] == ["Kampala Central", "Entebbe", "Gulu"]
    assert sorted(result.grouped) == ["Central", "Northern"]
    assert [z.name for z in result.grouped["Central"]] == ["Kampala Central", "Entebbe"]
