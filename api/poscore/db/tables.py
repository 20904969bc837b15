from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

Money = Numeric(12, 2)

products = Table(
    "products",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(250), nullable=False),
    Column("price", Money, nullable=False),
    Column("cost_price", Money, nullable=False, default=0),
    Column("category", String(120), nullable=False, default=""),
    Column("barcode", String(200)),
    Column("stock", Integer, nullable=False, default=0),
    Column("low_stock_threshold", Integer, nullable=False, default=5),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
)

customers = Table(
    "customers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(250), nullable=False, unique=True),
    Column("address", String(500)),
    Column("phone_number", String(40)),
    Column("nic", String(40)),
    Column("is_vat", Boolean, nullable=False, default=False),
    Column("updated_at", DateTime(timezone=True)),
)

# Customer and item data are copied onto the order at commit time. Neither
# customer_id nor order_items.product_id references the live tables.
orders = Table(
    "orders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("order_number", String(64), nullable=False),
    Column("subtotal", Money, nullable=False),
    Column("tax", Money, nullable=False, default=0),
    Column("discount", Money, nullable=False, default=0),
    Column("total", Money, nullable=False),
    Column("total_cost", Money, nullable=False),
    Column("total_profit", Money, nullable=False),
    Column("profit_margin", Money, nullable=False),
    Column("payment_method", String(16), nullable=False),
    Column("status", String(16), nullable=False, default="completed"),
    Column("customer_id", String(36)),
    Column("customer_name", String(250)),
    Column("customer_address", String(500)),
    Column("customer_phone_number", String(40)),
    Column("customer_nic", String(40)),
    Column("customer_is_vat", Boolean),
    Column("customer_contact", String(40)),
    Column("created_by", String(64)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("order_number", name="uq_orders_order_number"),
)

Index("ix_orders_created_at", orders.c.created_at)
Index("ix_orders_customer_name", orders.c.customer_name)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String(36), ForeignKey("orders.id"), nullable=False),
    Column("line_no", Integer, nullable=False),
    Column("product_id", String(36), nullable=False),
    Column("product_name", String(250), nullable=False),
    Column("product_category", String(120), nullable=False, default=""),
    Column("product_barcode", String(200), nullable=False, default=""),
    Column("quantity", Integer, nullable=False),
    Column("selling_price", Money, nullable=False),
    Column("cost_price", Money, nullable=False),
    Column("item_total", Money, nullable=False),
    Column("item_cost", Money, nullable=False),
    Column("item_profit", Money, nullable=False),
)

Index("ix_order_items_order_id", order_items.c.order_id)

order_sequences = Table(
    "order_sequences",
    metadata,
    Column("name", String(32), primary_key=True),
    Column("last_value", Integer, nullable=False, default=0),
)
