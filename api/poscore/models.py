"""Domain records used by the order-commit core."""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Round half away from zero to two decimal places."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal
    cost_price: Decimal
    category: str
    barcode: str | None
    stock: int
    low_stock_threshold: int
    is_active: bool


@dataclass(frozen=True)
class CustomerSnapshot:
    name: str
    customer_id: str | None = None
    address: str = ""
    phone_number: str = ""
    nic: str = ""
    is_vat: bool = False


@dataclass(frozen=True)
class OrderItemSnapshot:
    product_id: str
    product_name: str
    product_category: str
    product_barcode: str
    quantity: int
    selling_price: Decimal
    cost_price: Decimal
    item_total: Decimal
    item_cost: Decimal
    item_profit: Decimal

    @classmethod
    def price(cls, product: Product, quantity: int, selling_price: Decimal) -> "OrderItemSnapshot":
        selling_price = to_money(selling_price)
        cost_price = to_money(product.cost_price)
        item_total = to_money(selling_price * quantity)
        item_cost = to_money(cost_price * quantity)
        return cls(
            product_id=product.id,
            product_name=product.name,
            product_category=product.category or "",
            product_barcode=product.barcode or "",
            quantity=quantity,
            selling_price=selling_price,
            cost_price=cost_price,
            item_total=item_total,
            item_cost=item_cost,
            item_profit=to_money(item_total - item_cost),
        )


@dataclass(frozen=True)
class AssembledOrder:
    """A priced cart that has not touched inventory yet."""

    items: tuple[OrderItemSnapshot, ...]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    payment_method: PaymentMethod
    created_by: str
    customer: CustomerSnapshot | None = None
    customer_name: str | None = None
    customer_contact: str | None = None


@dataclass
class Order:
    id: str
    order_number: str
    items: list[OrderItemSnapshot]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    payment_method: PaymentMethod
    status: OrderStatus
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    customer: CustomerSnapshot | None = None
    customer_name: str | None = None
    customer_contact: str | None = None
