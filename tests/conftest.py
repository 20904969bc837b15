import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import insert, select, update  # noqa: E402

from poscore.db.session import get_db, init_db, make_engine, make_sessionmaker  # noqa: E402
from poscore.db.tables import customers, products  # noqa: E402
from poscore.models import utcnow  # noqa: E402
from poscore.schemas.orders import CreateOrderRequest  # noqa: E402


@pytest.fixture()
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'pos.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def make_product(session_factory):
    def _make(
        name="Widget",
        price="5.00",
        cost_price="3.00",
        stock=10,
        category="general",
        barcode="4006381333931",
        low_stock_threshold=5,
    ):
        product_id = str(uuid.uuid4())
        now = utcnow()
        with session_factory.begin() as session:
            session.execute(
                insert(products).values(
                    id=product_id,
                    name=name,
                    price=Decimal(price),
                    cost_price=Decimal(cost_price),
                    category=category,
                    barcode=barcode,
                    stock=stock,
                    low_stock_threshold=low_stock_threshold,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
        return product_id

    return _make


@pytest.fixture()
def make_customer(session_factory):
    def _make(name="Nimal Perera", address="12 Galle Road", phone_number="0771234567", nic="901234567V", is_vat=True):
        customer_id = str(uuid.uuid4())
        with session_factory.begin() as session:
            session.execute(
                insert(customers).values(
                    id=customer_id,
                    name=name,
                    address=address,
                    phone_number=phone_number,
                    nic=nic,
                    is_vat=is_vat,
                    updated_at=utcnow(),
                )
            )
        return customer_id

    return _make


@pytest.fixture()
def stock_of(session_factory):
    def _stock(product_id):
        with session_factory() as session:
            return session.execute(select(products.c.stock).where(products.c.id == product_id)).scalar()

    return _stock


@pytest.fixture()
def set_product(session_factory):
    def _set(product_id, **values):
        with session_factory.begin() as session:
            session.execute(update(products).where(products.c.id == product_id).values(**values))

    return _set


def cart(*lines, **fields):
    """Build an order request from ``(product_id, quantity)`` or ``(product_id, quantity, price)`` tuples."""
    items = []
    for line in lines:
        item = {"product": line[0], "quantity": line[1]}
        if len(line) > 2:
            item["price"] = line[2]
        items.append(item)
    payload = {"items": items, "payment_method": "cash", "user_id": "cashier-1"}
    payload.update(fields)
    return CreateOrderRequest(**payload)


@pytest.fixture()
def client(session_factory):
    from poscore.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def build_cart():
    return cart
