import time

import structlog
from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from poscore.db.session import ORDER_SEQUENCE
from poscore.db.tables import order_sequences

logger = structlog.get_logger(__name__)


class OrderNumberGenerator:
    """Allocates ``{prefix}-{epoch millis}-{sequence}`` order numbers.

    The sequence value comes from an atomic increment of a counter row, so
    two allocations never share it. The increment is committed straight away,
    which means a number belonging to a commit that later fails is never
    handed out again and gaps are expected.

    Must be called while ``db`` has no uncommitted writes of its own.
    """

    def __init__(self, prefix: str = "ORD", sequence: str = ORDER_SEQUENCE):
        self.prefix = prefix
        self.sequence = sequence

    def next_value(self, db: Session) -> int:
        value = db.execute(
            update(order_sequences)
            .where(order_sequences.c.name == self.sequence)
            .values(last_value=order_sequences.c.last_value + 1)
            .returning(order_sequences.c.last_value)
        ).scalar()

        if value is None:
            try:
                db.execute(insert(order_sequences).values(name=self.sequence, last_value=1))
                db.commit()
            except IntegrityError:
                # Another allocation created the counter first.
                db.rollback()
                return self.next_value(db)
            logger.info("Order sequence created", sequence=self.sequence)
            return 1

        db.commit()
        return value

    def next_number(self, db: Session) -> str:
        value = self.next_value(db)
        return f"{self.prefix}-{time.time_ns() // 1_000_000}-{value}"
