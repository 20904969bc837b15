"""Tests for order status changes and cancellation restock."""

import uuid

import pytest
from sqlalchemy import delete

from poscore.core.errors import InvalidIdError, InvalidTransitionError, OrderNotFoundError
from poscore.db.tables import products
from poscore.models import OrderStatus
from poscore.services.assembler import OrderAssembler
from poscore.services.checkout import CommitCoordinator
from poscore.services.status import StatusTransition


@pytest.fixture()
def place_order(db, build_cart):
    def _place(*lines):
        cart = OrderAssembler().assemble(db, build_cart(*lines), created_by="cashier-1")
        return CommitCoordinator().commit(db, cart)

    return _place


@pytest.fixture()
def transitions():
    return StatusTransition()


class TestCancel:
    def test_returns_stock(self, db, transitions, place_order, make_product, stock_of):
        first = make_product(stock=10)
        second = make_product(stock=4)
        order = place_order((first, 3), (second, 4))

        cancelled = transitions.cancel(db, order.id)

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.updated_at >= order.updated_at
        assert stock_of(first) == 10
        assert stock_of(second) == 4

    def test_second_cancel_is_a_no_op(self, db, transitions, place_order, make_product, stock_of):
        product_id = make_product(stock=10)
        order = place_order((product_id, 3))

        transitions.cancel(db, order.id)
        again = transitions.cancel(db, order.id)

        assert again.status == OrderStatus.CANCELLED
        assert stock_of(product_id) == 10

    def test_deleted_product_does_not_block_cancel(self, db, transitions, place_order, make_product, stock_of):
        kept = make_product(stock=5)
        removed = make_product(stock=5)
        order = place_order((kept, 1), (removed, 2))
        db.execute(delete(products).where(products.c.id == removed))
        db.commit()

        cancelled = transitions.cancel(db, order.id)

        assert cancelled.status == OrderStatus.CANCELLED
        assert stock_of(kept) == 5

    def test_items_are_unchanged(self, db, transitions, place_order, make_product):
        product_id = make_product(price="5.00", cost_price="3.00")
        order = place_order((product_id, 2))

        cancelled = transitions.cancel(db, order.id)

        assert cancelled.items == order.items
        assert cancelled.total_profit == order.total_profit


class TestTransitionGuards:
    def test_cancelled_order_cannot_be_completed(self, db, transitions, place_order, make_product, stock_of):
        product_id = make_product(stock=10)
        order = place_order((product_id, 3))
        transitions.cancel(db, order.id)

        with pytest.raises(InvalidTransitionError):
            transitions.apply(db, order.id, OrderStatus.COMPLETED)
        assert stock_of(product_id) == 10

    def test_completed_order_cannot_go_back_to_pending(self, db, transitions, place_order, make_product):
        order = place_order((make_product(), 1))

        with pytest.raises(InvalidTransitionError):
            transitions.apply(db, order.id, OrderStatus.PENDING)

    def test_same_status_is_accepted(self, db, transitions, place_order, make_product, stock_of):
        product_id = make_product(stock=10)
        order = place_order((product_id, 3))

        result = transitions.apply(db, order.id, OrderStatus.COMPLETED)

        assert result.status == OrderStatus.COMPLETED
        assert stock_of(product_id) == 7

    def test_unknown_order(self, db, transitions):
        with pytest.raises(OrderNotFoundError):
            transitions.cancel(db, str(uuid.uuid4()))

    def test_malformed_order_id(self, db, transitions):
        with pytest.raises(InvalidIdError):
            transitions.cancel(db, "12345")
