"""Tests for the stock ledger."""

import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import delete

from poscore.core.errors import InsufficientStockError, ProductNotFoundError
from poscore.db.tables import products
from poscore.services.inventory import InventoryLedger


@pytest.fixture()
def ledger():
    return InventoryLedger()


class TestReserve:
    def test_decrements_stock(self, db, ledger, make_product, stock_of):
        product_id = make_product(stock=10)

        assert ledger.reserve(db, product_id, 3) == 7
        db.commit()

        assert stock_of(product_id) == 7

    def test_can_take_the_last_unit(self, db, ledger, make_product, stock_of):
        product_id = make_product(stock=2)

        assert ledger.reserve(db, product_id, 2) == 0
        db.commit()

        assert stock_of(product_id) == 0

    def test_rejects_more_than_available(self, db, ledger, make_product, stock_of):
        product_id = make_product(name="Tea", stock=2)

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.reserve(db, product_id, 3)
        db.rollback()

        assert exc_info.value.product_id == product_id
        assert exc_info.value.requested == 3
        assert exc_info.value.available == 2
        assert "Tea" in exc_info.value.message
        assert stock_of(product_id) == 2

    def test_unknown_product(self, db, ledger):
        with pytest.raises(ProductNotFoundError):
            ledger.reserve(db, str(uuid.uuid4()), 1)


class TestRelease:
    def test_increments_stock(self, db, ledger, make_product, stock_of):
        product_id = make_product(stock=4)

        assert ledger.release(db, product_id, 6) == 10
        db.commit()

        assert stock_of(product_id) == 10

    def test_deleted_product_is_skipped(self, db, ledger, make_product):
        product_id = make_product()
        db.execute(delete(products).where(products.c.id == product_id))
        db.commit()

        assert ledger.release(db, product_id, 3) is None


def test_concurrent_reservations_never_oversell(session_factory, make_product, stock_of):
    product_id = make_product(stock=10)
    ledger = InventoryLedger()

    def take_one(_):
        with session_factory() as session:
            try:
                ledger.reserve(session, product_id, 1)
                session.commit()
                return True
            except InsufficientStockError:
                session.rollback()
                return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(take_one, range(25)))

    assert results.count(True) == 10
    assert stock_of(product_id) == 0
