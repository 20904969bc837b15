import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from poscore.core.errors import InvalidTransitionError, OrderNotFoundError, PosError, ServerError
from poscore.models import Order, OrderStatus, utcnow
from poscore.services.catalog import parse_id
from poscore.services.inventory import InventoryLedger
from poscore.services.order_store import OrderStore

logger = structlog.get_logger(__name__)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(),
    OrderStatus.COMPLETED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}


class StatusTransition:
    def __init__(self, ledger: InventoryLedger | None = None, store: OrderStore | None = None):
        self.ledger = ledger or InventoryLedger()
        self.store = store or OrderStore()

    def cancel(self, db: Session, order_id: str) -> Order:
        return self.apply(db, order_id, OrderStatus.CANCELLED)

    def apply(self, db: Session, order_id: str, target: OrderStatus) -> Order:
        """Move an order to ``target``.

        Asking for the status the order already has changes nothing, so a
        repeated cancel never returns stock twice. Cancelling a completed
        order returns every item's quantity to stock in the same transaction
        as the status write.
        """
        order_id = parse_id(order_id)
        order = self.store.get(db, order_id)
        if order is None:
            raise OrderNotFoundError(orderId=order_id)

        if order.status == target:
            logger.info("Order already in requested status", order_id=order_id, status=target.value)
            return order
        if target not in TRANSITIONS[order.status]:
            raise InvalidTransitionError(order.status.value, target.value)

        try:
            if not self.store.transition(db, order_id, order.status, target, utcnow()):
                # Lost a race with another status change; report what it left.
                db.rollback()
                return self._after_lost_race(db, order_id, target)

            if target == OrderStatus.CANCELLED:
                for item in order.items:
                    self.ledger.release(db, item.product_id, item.quantity)

            db.commit()
        except PosError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Order status update failed", order_id=order_id)
            raise ServerError("Server error occurred while updating order", error=str(exc)) from exc

        if target == OrderStatus.CANCELLED:
            logger.info(
                "Order cancelled, stock returned",
                order_id=order_id,
                order_number=order.order_number,
                lines=len(order.items),
            )
        return self.store.get(db, order_id)

    def _after_lost_race(self, db: Session, order_id: str, target: OrderStatus) -> Order:
        order = self.store.get(db, order_id)
        if order is None:
            raise OrderNotFoundError(orderId=order_id)
        if order.status != target:
            raise InvalidTransitionError(order.status.value, target.value)
        return order
