"""Pytest fixtures for storefront order tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from storefront.core.auth import create_access_token
from storefront.core.payment_gateway import (
    RazorpayGateway,
    RemoteOrder,
    compute_signature,
    get_payment_gateway,
)
from storefront.database import build_engine, get_session
from storefront.models.product import Brand, Product
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.stock_ledger import StockLedger
from storefront.repositories.user_repo import UserRepository
from storefront.services.order_service import OrderService

GATEWAY_SECRET = "rzp_test_secret"

ADDRESS = {
    "full_name": "Asha Rao",
    "phone_number": "9876543210",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "postal_code": "560001",
}


class FakeGateway(RazorpayGateway):
    """Gateway double: remote orders are made up locally, signatures are real."""

    def __init__(self, configured: bool = True):
        super().__init__(
            key_id="rzp_test_key" if configured else None,
            key_secret=GATEWAY_SECRET if configured else None,
        )
        self.created: list[dict] = []
        self.fail_with: Exception | None = None

    def create_remote_order(self, amount_minor_units, currency, receipt=None):
        if not self.configured:
            return super().create_remote_order(amount_minor_units, currency, receipt)
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append(
            {"amount": amount_minor_units, "currency": currency, "receipt": receipt}
        )
        return RemoteOrder(
            gateway_order_id=f"order_{len(self.created):06d}",
            amount=amount_minor_units,
            currency=currency,
        )


def sign(gateway_order_id: str, gateway_payment_id: str) -> str:
    return compute_signature(gateway_order_id, gateway_payment_id, GATEWAY_SECRET)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def line(product: Product, quantity: int, size: str | None = None) -> dict:
    data = {"product_id": str(product.id), "quantity": quantity}
    if size:
        data["size"] = size
    return data


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def catalog(session):
    """Brand, products and users used across tests."""
    brand = Brand(name="Nike")
    session.add(brand)
    session.commit()
    session.refresh(brand)

    shoe = Product(
        title="Air Max 90",
        description="Classic comfort sneakers.",
        brand_id=brand.id,
        price=Decimal("129.00"),
        stock_on_hand=5,
        thumbnail="https://img.example/airmax-thumb.jpg",
        images=["https://img.example/airmax-1.jpg", "https://img.example/airmax-2.jpg"],
        sku="NK-AM90",
        weight=0.8,
        category_name="Footwear",
    )
    jeans = Product(
        title="511 Slim Jeans",
        description="Slim fit denim.",
        price=Decimal("59.00"),
        stock_on_hand=10,
        thumbnail="https://img.example/jeans.jpg",
    )
    tee = Product(
        title="Logo Tee",
        description="Cotton tee.",
        brand_id=brand.id,
        price=Decimal("20.00"),
        stock_on_hand=2,
    )
    retired = Product(
        title="Retired Runner",
        description="No longer sold.",
        price=Decimal("80.00"),
        stock_on_hand=7,
        is_deleted=True,
    )
    customer = User(email="asha@example.com", name="Asha Rao", role="user")
    other = User(email="ravi@example.com", name="Ravi", role="user")
    admin = User(email="admin@example.com", name="Admin", role="admin")

    session.add_all([shoe, jeans, tee, retired, customer, other, admin])
    session.commit()
    for obj in (shoe, jeans, tee, retired, customer, other, admin):
        session.refresh(obj)

    return {
        "brand": brand,
        "shoe": shoe,
        "jeans": jeans,
        "tee": tee,
        "retired": retired,
        "customer": customer,
        "other": other,
        "admin": admin,
    }


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def service(gateway):
    product_repo = ProductRepository()
    return OrderService(
        OrderRepository(),
        product_repo,
        UserRepository(),
        StockLedger(product_repo),
        gateway,
        currency="INR",
    )


@pytest.fixture
def client(session, gateway):
    from storefront.main import app

    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def stock_of(session: Session, product: Product) -> int:
    return ProductRepository().current_stock(session, product.id)
