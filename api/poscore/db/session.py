from collections.abc import Iterator

from sqlalchemy import Engine, create_engine, insert, select
from sqlalchemy.orm import Session, sessionmaker

from poscore.core.config import settings
from poscore.db.tables import metadata, order_sequences

ORDER_SEQUENCE = "orders"


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def make_sessionmaker(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = make_engine(settings.database_url)
SessionLocal = make_sessionmaker(engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """Create missing tables and seed the order-number counter."""
    metadata.create_all(bind)
    with bind.begin() as conn:
        exists = conn.execute(
            select(order_sequences.c.name).where(order_sequences.c.name == ORDER_SEQUENCE)
        ).first()
        if not exists:
            conn.execute(insert(order_sequences).values(name=ORDER_SEQUENCE, last_value=0))
