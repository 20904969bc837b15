"""Turns a submitted cart into a priced, immutable order draft.

Nothing here writes to the database. Product data is always re-read from the
catalog; the only client-supplied figure that is honoured per line is an
optional sale price.
"""

from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from poscore.core.errors import (
    CustomerNotFoundError,
    InsufficientStockError,
    InvalidItemError,
    ProductNotFoundError,
    ValidationError,
)
from poscore.models import (
    ZERO,
    AssembledOrder,
    CustomerSnapshot,
    OrderItemSnapshot,
    to_money,
)
from poscore.schemas.orders import CartItemInput, CreateOrderRequest
from poscore.services.catalog import CustomerDirectory, ProductCatalog, parse_id

logger = structlog.get_logger(__name__)


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def profit_margin(total_profit: Decimal, total_cost: Decimal) -> Decimal:
    if total_cost == 0:
        return ZERO
    return to_money(total_profit / total_cost * 100)


class OrderAssembler:
    def __init__(
        self,
        catalog: ProductCatalog | None = None,
        customers: CustomerDirectory | None = None,
        amount_tolerance: Decimal | float = Decimal("0.01"),
    ):
        self.catalog = catalog or ProductCatalog()
        self.customers = customers or CustomerDirectory()
        self.amount_tolerance = Decimal(str(amount_tolerance))

    def assemble(self, db: Session, payload: CreateOrderRequest, created_by: str) -> AssembledOrder:
        if not payload.items:
            raise ValidationError("No items provided")

        customer = self.resolve_customer(db, payload)
        items = tuple(self.price_line(db, line) for line in payload.items)

        subtotal = to_money(sum((item.item_total for item in items), ZERO))
        total_cost = to_money(sum((item.item_cost for item in items), ZERO))
        tax = to_money(payload.tax)
        discount = to_money(payload.discount)
        total = to_money(subtotal + tax - discount)

        self._check_client_amount("subtotal", payload.subtotal, subtotal)
        self._check_client_amount("total", payload.total, total)
        if total < 0:
            raise ValidationError("Discount exceeds order amount", total=float(total))

        total_profit = to_money(subtotal - total_cost - discount)

        logger.debug(
            "Cart priced",
            lines=len(items),
            subtotal=str(subtotal),
            total_cost=str(total_cost),
            total_profit=str(total_profit),
        )

        return AssembledOrder(
            items=items,
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            total=total,
            total_cost=total_cost,
            total_profit=total_profit,
            profit_margin=profit_margin(total_profit, total_cost),
            payment_method=payload.payment_method,
            created_by=created_by,
            customer=customer,
            customer_name=customer.name if customer else _clean(payload.customer_name) or None,
            customer_contact=customer.phone_number if customer else _clean(payload.customer_contact) or None,
        )

    def price_line(self, db: Session, line: CartItemInput) -> OrderItemSnapshot:
        if not line.product or not line.quantity or line.quantity <= 0:
            raise InvalidItemError()

        product_id = parse_id(line.product)
        product = self.catalog.get(db, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        # Advisory only: the reservation's conditional write is what counts.
        if product.stock < line.quantity:
            raise InsufficientStockError(product.id, line.quantity, product.stock, name=product.name)

        selling_price = Decimal(str(line.price)) if line.price else product.price
        return OrderItemSnapshot.price(product, line.quantity, selling_price)

    def resolve_customer(self, db: Session, payload: CreateOrderRequest) -> CustomerSnapshot | None:
        if payload.customer_id:
            customer_id = parse_id(payload.customer_id)
            row = self.customers.get(db, customer_id)
            if row is None:
                raise CustomerNotFoundError(customer_id)
            return CustomerSnapshot(
                customer_id=row["id"],
                name=row["name"],
                address=row["address"] or "",
                phone_number=row["phone_number"] or "",
                nic=row["nic"] or "",
                is_vat=bool(row["is_vat"]),
            )

        data = payload.customer_data
        if data and _clean(data.name):
            return CustomerSnapshot(
                name=_clean(data.name),
                address=_clean(data.address),
                phone_number=_clean(data.phone_number),
                nic=_clean(data.nic),
                is_vat=bool(data.is_vat),
            )

        if _clean(payload.customer_name):
            return CustomerSnapshot(
                name=_clean(payload.customer_name),
                phone_number=_clean(payload.customer_contact),
            )

        return None

    def _check_client_amount(self, field: str, submitted: float | None, computed: Decimal) -> None:
        if submitted is None:
            return
        if abs(to_money(submitted) - computed) > self.amount_tolerance:
            raise ValidationError(
                f"Submitted {field} does not match the cart",
                submitted=float(to_money(submitted)),
                expected=float(computed),
            )
