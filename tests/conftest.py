"""Pytest fixtures for the commerce core tests."""

import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import get_settings
from app.core.locks import KeyedLock
from app.core.utils import utcnow
from app.database import get_session
from app.main import app
from app.models.appointment import SalonService, Stylist
from app.models.coupon import Coupon, DiscountType
from app.models.product import Product
from app.models.reward import RewardTier
from app.models.shipping import ShippingZone
from app.models.user import User
from app.repositories.appointment_repo import AppointmentRepository
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.promotion_repo import PromotionRepository
from app.repositories.reward_repo import RewardRepository
from app.repositories.shipping_repo import ShippingRepository
from app.services.appointment_service import AppointmentService
from app.services.discount_service import DiscountService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.reward_service import RewardService
from app.services.shipping_service import ShippingService


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


# ---------- Seed data ----------


@pytest.fixture
def customer(session):
    user = User(id=uuid.uuid4(), email="amina@example.com", name="amina", role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_customer(session):
    user = User(id=uuid.uuid4(), email="brian@example.com", name="brian", role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def staff(session):
    user = User(id=uuid.uuid4(), email="staff@example.com", name="staff", role="staff")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_product(session):
    def _make(price=1000.0, stock=10, weight_kg=None, name=None, is_active=True):
        name = name or f"Product {uuid.uuid4().hex[:6]}"
        product = Product(
            name=name,
            slug=name.lower().replace(" ", "-"),
            price=price,
            stock_quantity=stock,
            weight_kg=weight_kg,
            is_active=is_active,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def zone(session):
    zone = ShippingZone(
        name="Kampala Central",
        district="Kampala",
        region="Central",
        distance_km=5,
        base_fee=5000,
        per_kg_fee=1000,
        estimated_days=1,
    )
    session.add(zone)
    session.commit()
    session.refresh(zone)
    return zone


@pytest.fixture
def make_coupon(session):
    def _make(code="SAVE10", **overrides):
        values = dict(
            code=code,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=10,
        )
        values.update(overrides)
        coupon = Coupon(**values)
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def reward_tiers(session):
    tiers = [
        RewardTier(name="Bronze", min_points=0),
        RewardTier(name="Silver", min_points=500, points_multiplier=1.25),
        RewardTier(name="Gold", min_points=1500, points_multiplier=1.5),
    ]
    session.add_all(tiers)
    session.commit()
    return tiers


@pytest.fixture
def salon_service(session):
    service = SalonService(name="Hair Styling", price=50000, duration=60)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def stylist(session):
    stylist = Stylist(name="Grace")
    session.add(stylist)
    session.commit()
    session.refresh(stylist)
    return stylist


# ---------- Services ----------


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def shipping_service():
    return ShippingService(ShippingRepository())


@pytest.fixture
def discount_service():
    return DiscountService(CouponRepository(), PromotionRepository(), ProductRepository())


@pytest.fixture
def reward_service():
    return RewardService(RewardRepository())


@pytest.fixture
def order_service(discount_service, shipping_service, reward_service, notifier):
    return OrderService(
        OrderRepository(),
        ProductRepository(),
        discount_service,
        shipping_service,
        reward_service,
        notifier,
    )


@pytest.fixture
def appointment_service(notifier):
    return AppointmentService(AppointmentRepository(), notifier, locks=KeyedLock())


# ---------- API ----------


@pytest.fixture
def auth_headers():
    """Build a bearer header carrying a signed token for `user`."""
    settings = get_settings()

    def _headers(user: User) -> dict[str, str]:
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "exp": utcnow() + timedelta(hours=1),
        }
        token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
