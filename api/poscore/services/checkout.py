"""Order commit.

A commit reserves stock for every cart line, in the order the lines were
submitted, and inserts the order, all inside one database transaction. When
any step fails the transaction is rolled back, which returns every unit
reserved so far before the error reaches the caller. A crash part-way
through leaves nothing behind for the same reason.

Each reservation is still a conditional single-row write (see
``InventoryLedger.reserve``), so concurrent commits on the same product can
never oversell even though nothing here locks the cart as a whole.
"""

import time
import uuid

import structlog
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from poscore.core.errors import (
    DuplicateOrderNumberError,
    InsufficientStockError,
    PosError,
    ServerError,
)
from poscore.models import AssembledOrder, Order, OrderStatus, utcnow
from poscore.services.inventory import InventoryLedger
from poscore.services.order_numbers import OrderNumberGenerator
from poscore.services.order_store import OrderStore

logger = structlog.get_logger(__name__)

# PostgreSQL serialization failure / deadlock
RETRYABLE_PGCODES = {"40001", "40P01"}


def is_retryable(exc: Exception) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None)
    if code in RETRYABLE_PGCODES:
        return True
    msg = str(orig or exc).lower()
    return any(k in msg for k in ("deadlock detected", "could not serialize access", "database is locked"))


class CommitCoordinator:
    def __init__(
        self,
        ledger: InventoryLedger | None = None,
        numbers: OrderNumberGenerator | None = None,
        store: OrderStore | None = None,
        max_attempts: int = 3,
        retry_backoff: float = 0.05,
    ):
        self.ledger = ledger or InventoryLedger()
        self.numbers = numbers or OrderNumberGenerator()
        self.store = store or OrderStore()
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff

    def commit(self, db: Session, cart: AssembledOrder) -> Order:
        """Reserve stock for ``cart`` and persist it as a completed order.

        Raises InsufficientStockError, DuplicateOrderNumberError (after
        ``max_attempts`` collisions) or ServerError. In every failure case
        no stock stays reserved and no order is stored.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                order_number = self.numbers.next_number(db)
                reserved = self.reserve_all(db, cart)
                order = self.build_order(cart, order_number)
                self.store.insert(db, order)
                db.commit()
            except InsufficientStockError:
                db.rollback()
                raise
            except DuplicateOrderNumberError:
                db.rollback()
                logger.warning("Order number collision, retrying", attempt=attempt)
                if attempt == self.max_attempts:
                    raise
                continue
            except PosError:
                db.rollback()
                raise
            except OperationalError as exc:
                db.rollback()
                if is_retryable(exc) and attempt < self.max_attempts:
                    logger.warning("Commit conflict, retrying", attempt=attempt, error=str(exc.orig))
                    time.sleep(self.retry_backoff * attempt)
                    continue
                logger.exception("Order commit failed")
                raise ServerError("Server error occurred while creating order", error=str(exc)) from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Order commit failed")
                raise ServerError("Server error occurred while creating order", error=str(exc)) from exc

            logger.info(
                "Order committed",
                order_id=order.id,
                order_number=order.order_number,
                lines=reserved,
                total=str(order.total),
                total_profit=str(order.total_profit),
            )
            return order

        raise DuplicateOrderNumberError()

    def reserve_all(self, db: Session, cart: AssembledOrder) -> int:
        """Reserve every line in cart order and return how many were reserved."""
        reserved = 0
        for item in cart.items:
            try:
                self.ledger.reserve(db, item.product_id, item.quantity)
            except InsufficientStockError:
                if reserved:
                    logger.info(
                        "Rolling back reservations",
                        failed_product_id=item.product_id,
                        reserved_lines=reserved,
                    )
                raise
            reserved += 1
        return reserved

    def build_order(self, cart: AssembledOrder, order_number: str) -> Order:
        now = utcnow()
        return Order(
            id=str(uuid.uuid4()),
            order_number=order_number,
            items=list(cart.items),
            subtotal=cart.subtotal,
            tax=cart.tax,
            discount=cart.discount,
            total=cart.total,
            total_cost=cart.total_cost,
            total_profit=cart.total_profit,
            profit_margin=cart.profit_margin,
            payment_method=cart.payment_method,
            status=OrderStatus.COMPLETED,
            created_by=cart.created_by,
            created_at=now,
            updated_at=now,
            customer=cart.customer,
            customer_name=cart.customer_name,
            customer_contact=cart.customer_contact,
        )
