from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from poscore.models import CustomerSnapshot, Order, OrderItemSnapshot, OrderStatus, PaymentMethod


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class CartItemInput(CamelModel):
    product: str | None = None
    quantity: int | None = None
    price: float | None = Field(default=None, ge=0)


class CustomerDataInput(CamelModel):
    name: str | None = None
    address: str | None = None
    phone_number: str | None = None
    nic: str | None = None
    is_vat: bool = False


class CreateOrderRequest(CamelModel):
    items: list[CartItemInput] = []
    subtotal: float | None = None
    tax: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    total: float | None = None
    payment_method: PaymentMethod
    customer_id: str | None = None
    customer_data: CustomerDataInput | None = None
    customer_name: str | None = None
    customer_contact: str | None = None
    user_id: str | None = None


class StatusUpdateRequest(CamelModel):
    status: OrderStatus


class OrderItemOut(CamelModel):
    product_id: str
    product_name: str
    product_category: str
    product_barcode: str
    quantity: int
    selling_price: float
    cost_price: float
    item_total: float
    item_cost: float
    item_profit: float

    @classmethod
    def from_snapshot(cls, item: OrderItemSnapshot) -> "OrderItemOut":
        return cls(
            product_id=item.product_id,
            product_name=item.product_name,
            product_category=item.product_category,
            product_barcode=item.product_barcode,
            quantity=item.quantity,
            selling_price=float(item.selling_price),
            cost_price=float(item.cost_price),
            item_total=float(item.item_total),
            item_cost=float(item.item_cost),
            item_profit=float(item.item_profit),
        )


class CustomerOut(CamelModel):
    customer_id: str | None
    name: str
    address: str
    phone_number: str
    nic: str
    is_vat: bool

    @classmethod
    def from_snapshot(cls, customer: CustomerSnapshot) -> "CustomerOut":
        return cls(
            customer_id=customer.customer_id,
            name=customer.name,
            address=customer.address,
            phone_number=customer.phone_number,
            nic=customer.nic,
            is_vat=customer.is_vat,
        )


class OrderOut(CamelModel):
    id: str
    order_number: str
    items: list[OrderItemOut]
    subtotal: float
    tax: float
    discount: float
    total: float
    total_cost: float
    total_profit: float
    profit_margin: float
    payment_method: PaymentMethod
    status: OrderStatus
    customer: CustomerOut | None = None
    customer_name: str | None = None
    customer_contact: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderOut":
        return cls(
            id=order.id,
            order_number=order.order_number,
            items=[OrderItemOut.from_snapshot(item) for item in order.items],
            subtotal=float(order.subtotal),
            tax=float(order.tax),
            discount=float(order.discount),
            total=float(order.total),
            total_cost=float(order.total_cost),
            total_profit=float(order.total_profit),
            profit_margin=float(order.profit_margin),
            payment_method=order.payment_method,
            status=order.status,
            customer=CustomerOut.from_snapshot(order.customer) if order.customer else None,
            customer_name=order.customer_name,
            customer_contact=order.customer_contact,
            created_by=order.created_by,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class ProfitInfo(CamelModel):
    total_cost: float
    total_profit: float
    profit_margin: float


class CreateOrderResponse(CamelModel):
    success: bool = True
    message: str = "Order created successfully"
    order_id: str
    order: OrderOut
    profit_info: ProfitInfo
