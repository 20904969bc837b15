"""Read access to the product and customer collaborators."""

import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from poscore.core.errors import InvalidIdError
from poscore.db.tables import customers, products
from poscore.models import Product


def parse_id(value: str) -> str:
    """Normalise an identifier, raising InvalidIdError when it is malformed."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidIdError(id=str(value)) from exc


class ProductCatalog:
    def get(self, db: Session, product_id: str) -> Product | None:
        row = db.execute(select(products).where(products.c.id == product_id)).mappings().first()
        if row is None:
            return None
        return Product(
            id=row["id"],
            name=row["name"],
            price=Decimal(str(row["price"])),
            cost_price=Decimal(str(row["cost_price"] or 0)),
            category=row["category"] or "",
            barcode=row["barcode"],
            stock=int(row["stock"]),
            low_stock_threshold=int(row["low_stock_threshold"]),
            is_active=bool(row["is_active"]),
        )


class CustomerDirectory:
    def get(self, db: Session, customer_id: str) -> dict | None:
        row = db.execute(select(customers).where(customers.c.id == customer_id)).mappings().first()
        return dict(row) if row else None
