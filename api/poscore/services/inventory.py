"""Stock counter writes.

Every change to ``products.stock`` goes through this module, and each one is
a single UPDATE statement. Stock is never computed from a previous read.
"""

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from poscore.core.errors import InsufficientStockError, ProductNotFoundError
from poscore.db.tables import products
from poscore.models import utcnow

logger = structlog.get_logger(__name__)


class InventoryLedger:
    def reserve(self, db: Session, product_id: str, quantity: int) -> int:
        """Take ``quantity`` units if at least that many are on hand.

        Returns the new stock level. The write runs inside the caller's
        transaction; the caller commits or rolls back.
        """
        row = db.execute(
            update(products)
            .where(products.c.id == product_id, products.c.stock >= quantity)
            .values(stock=products.c.stock - quantity, updated_at=utcnow())
            .returning(products.c.stock, products.c.low_stock_threshold, products.c.name)
        ).first()

        if row is None:
            current = db.execute(
                select(products.c.stock, products.c.name).where(products.c.id == product_id)
            ).first()
            if current is None:
                raise ProductNotFoundError(product_id)
            logger.info(
                "Stock reservation rejected",
                product_id=product_id,
                requested=quantity,
                available=current.stock,
            )
            raise InsufficientStockError(product_id, quantity, current.stock, name=current.name)

        new_stock, threshold, name = row
        if new_stock <= threshold:
            logger.warning(
                "Product stock at or below threshold",
                product_id=product_id,
                product_name=name,
                stock=new_stock,
                threshold=threshold,
            )
        return new_stock

    def release(self, db: Session, product_id: str, quantity: int) -> int | None:
        """Return ``quantity`` units to stock.

        A product that no longer exists is skipped with a warning and
        ``None`` is returned.
        """
        row = db.execute(
            update(products)
            .where(products.c.id == product_id)
            .values(stock=products.c.stock + quantity, updated_at=utcnow())
            .returning(products.c.stock)
        ).first()

        if row is None:
            logger.warning(
                "Product no longer exists, stock not returned",
                product_id=product_id,
                quantity=quantity,
            )
            return None

        logger.debug("Stock released", product_id=product_id, quantity=quantity, stock=row.stock)
        return row.stock
