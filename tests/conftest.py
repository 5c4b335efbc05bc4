"""Pytest configuration: in-memory database, fake carrier and payment gateway."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from storefront.db.session import create_db_and_tables, get_session, make_engine
from storefront.main import app
from storefront.models.coupon import Coupon, CouponType
from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.product import Product
from storefront.models.user import User
from storefront.routers.checkout import get_payment_gateway, get_shipping_service
from storefront.services.auth import AuthService
from storefront.services.shipping import ShippingService
from tests.fakes import FakeCarrier, FakeGateway, auth_headers, make_quotes


@pytest.fixture(name="session")
def session_fixture():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def carrier():
    return FakeCarrier(quotes=make_quotes())


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(name="client")
def client_fixture(session, carrier, gateway):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_shipping_service] = lambda: ShippingService(carrier)
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_user(session, email, is_superuser=False):
    user = User(
        email=email,
        name="Test User",
        password_hash=AuthService(session).get_password_hash("secret123"),
        is_superuser=is_superuser,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user(session):
    return _create_user(session, "customer@example.com")


@pytest.fixture
def other_user(session):
    return _create_user(session, "other@example.com")


@pytest.fixture
def admin(session):
    return _create_user(session, "admin@example.com", is_superuser=True)


@pytest.fixture
def user_headers(session, user):
    return auth_headers(session, user)


@pytest.fixture
def admin_headers(session, admin):
    return auth_headers(session, admin)


@pytest.fixture
def make_coupon(session):
    def factory(**overrides):
        data = {
            "code": "SAVE10",
            "name": "10% off",
            "discount_type": CouponType.PERCENTAGE,
            "discount_value": 10,
            "max_discount": 500,
        }
        data.update(overrides)
        coupon = Coupon(**data)
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon
    return factory


@pytest.fixture
def product(session):
    product = Product(name="RTX 4060 Ti", slug="rtx-4060-ti", sku="GPU-4060TI", price=4000.0, stock_quantity=5)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture
def make_order(session):
    def factory(user_id, coupon=None, status=OrderStatus.CONFIRMED, number="SCBTEST0001"):
        order = Order(
            order_number=number,
            user_id=user_id,
            status=status,
            payment_status=PaymentStatus.COD_PENDING,
            payment_method=PaymentMethod.COD,
            subtotal=8000,
            total=8000,
            coupon_id=coupon.id if coupon else None,
            coupon_code=coupon.code if coupon else None,
            shipping_name="Test User",
            shipping_mobile="9876543210",
            shipping_address1="221B Baker Street, Bandra West",
            shipping_city="Mumbai",
            shipping_state="Maharashtra",
            shipping_pincode="400050",
            created_at=datetime.utcnow(),
        )
        session.add(order)
        session.commit()
        session.refresh(order)
        return order
    return factory
