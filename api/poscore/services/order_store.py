"""Durable order records.

The store only writes ``orders`` and ``order_items``. Items are written once
when the order is inserted and never updated afterwards; an order row
changes only through a conditional status write.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from poscore.core.errors import DuplicateOrderNumberError
from poscore.db.tables import order_items, orders
from poscore.models import (
    ZERO,
    CustomerSnapshot,
    Order,
    OrderItemSnapshot,
    OrderStatus,
    PaymentMethod,
    as_utc,
    to_money,
)


def _money(value) -> Decimal:
    return to_money(Decimal(str(value))) if value is not None else ZERO


def _item_from_row(row) -> OrderItemSnapshot:
    return OrderItemSnapshot(
        product_id=row["product_id"],
        product_name=row["product_name"],
        product_category=row["product_category"] or "",
        product_barcode=row["product_barcode"] or "",
        quantity=int(row["quantity"]),
        selling_price=_money(row["selling_price"]),
        cost_price=_money(row["cost_price"]),
        item_total=_money(row["item_total"]),
        item_cost=_money(row["item_cost"]),
        item_profit=_money(row["item_profit"]),
    )


def _order_from_row(row, items: list[OrderItemSnapshot]) -> Order:
    customer = None
    if row["customer_name"] is not None and row["customer_is_vat"] is not None:
        customer = CustomerSnapshot(
            customer_id=row["customer_id"],
            name=row["customer_name"],
            address=row["customer_address"] or "",
            phone_number=row["customer_phone_number"] or "",
            nic=row["customer_nic"] or "",
            is_vat=bool(row["customer_is_vat"]),
        )
    return Order(
        id=row["id"],
        order_number=row["order_number"],
        items=items,
        subtotal=_money(row["subtotal"]),
        tax=_money(row["tax"]),
        discount=_money(row["discount"]),
        total=_money(row["total"]),
        total_cost=_money(row["total_cost"]),
        total_profit=_money(row["total_profit"]),
        profit_margin=_money(row["profit_margin"]),
        payment_method=PaymentMethod(row["payment_method"]),
        status=OrderStatus(row["status"]),
        created_by=row["created_by"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        customer=customer,
        customer_name=row["customer_name"],
        customer_contact=row["customer_contact"],
    )


def _date_filters(start: datetime | None, end: datetime | None) -> list:
    clauses = []
    if start is not None:
        clauses.append(orders.c.created_at >= as_utc(start))
    if end is not None:
        clauses.append(orders.c.created_at <= as_utc(end))
    return clauses


class OrderStore:
    def insert(self, db: Session, order: Order) -> None:
        """Write the order and its item snapshots in the caller's transaction."""
        customer = order.customer
        try:
            db.execute(
                insert(orders).values(
                    id=order.id,
                    order_number=order.order_number,
                    subtotal=order.subtotal,
                    tax=order.tax,
                    discount=order.discount,
                    total=order.total,
                    total_cost=order.total_cost,
                    total_profit=order.total_profit,
                    profit_margin=order.profit_margin,
                    payment_method=order.payment_method.value,
                    status=order.status.value,
                    customer_id=customer.customer_id if customer else None,
                    customer_name=order.customer_name,
                    customer_address=customer.address if customer else None,
                    customer_phone_number=customer.phone_number if customer else None,
                    customer_nic=customer.nic if customer else None,
                    customer_is_vat=customer.is_vat if customer else None,
                    customer_contact=order.customer_contact,
                    created_by=order.created_by,
                    created_at=order.created_at,
                    updated_at=order.updated_at,
                )
            )
        except IntegrityError as exc:
            if "order_number" in str(exc.orig):
                raise DuplicateOrderNumberError(orderNumber=order.order_number) from exc
            raise

        db.execute(
            insert(order_items),
            [
                {
                    "order_id": order.id,
                    "line_no": line_no,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "product_category": item.product_category,
                    "product_barcode": item.product_barcode,
                    "quantity": item.quantity,
                    "selling_price": item.selling_price,
                    "cost_price": item.cost_price,
                    "item_total": item.item_total,
                    "item_cost": item.item_cost,
                    "item_profit": item.item_profit,
                }
                for line_no, item in enumerate(order.items)
            ],
        )

    def get(self, db: Session, order_id: str) -> Order | None:
        row = db.execute(select(orders).where(orders.c.id == order_id)).mappings().first()
        if row is None:
            return None
        return _order_from_row(row, self._load_items(db, [order_id])[order_id])

    def find(
        self,
        db: Session,
        start: datetime | None = None,
        end: datetime | None = None,
        status: OrderStatus | None = None,
        payment_method: PaymentMethod | None = None,
    ) -> list[Order]:
        query = select(orders).where(*_date_filters(start, end))
        if status is not None:
            query = query.where(orders.c.status == status.value)
        if payment_method is not None:
            query = query.where(orders.c.payment_method == payment_method.value)
        rows = db.execute(query.order_by(orders.c.created_at.desc())).mappings().all()

        items = self._load_items(db, [row["id"] for row in rows])
        return [_order_from_row(row, items[row["id"]]) for row in rows]

    def transition(
        self,
        db: Session,
        order_id: str,
        current: OrderStatus,
        target: OrderStatus,
        at: datetime,
    ) -> bool:
        """Move the order from ``current`` to ``target``.

        Returns False when the stored status is no longer ``current``.
        """
        result = db.execute(
            update(orders)
            .where(orders.c.id == order_id, orders.c.status == current.value)
            .values(status=target.value, updated_at=at)
        )
        return result.rowcount == 1

    def profit_rows(self, db: Session, start: datetime | None = None, end: datetime | None = None) -> list:
        return db.execute(
            select(
                orders.c.total,
                orders.c.total_cost,
                orders.c.total_profit,
                orders.c.profit_margin,
                orders.c.created_at,
            )
            .where(orders.c.status != OrderStatus.CANCELLED.value, *_date_filters(start, end))
            .order_by(orders.c.created_at)
        ).mappings().all()

    def _load_items(self, db: Session, order_ids: list[str]) -> dict[str, list[OrderItemSnapshot]]:
        grouped: dict[str, list[OrderItemSnapshot]] = defaultdict(list)
        if not order_ids:
            return grouped
        rows = db.execute(
            select(order_items)
            .where(order_items.c.order_id.in_(order_ids))
            .order_by(order_items.c.order_id, order_items.c.line_no)
        ).mappings().all()
        for row in rows:
            grouped[row["order_id"]].append(_item_from_row(row))
        return grouped
