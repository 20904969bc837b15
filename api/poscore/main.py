import time
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from poscore.core.config import settings
from poscore.core.errors import AuthenticationError, OrderNotFoundError, PosError
from poscore.core.logging import add_context, clear_context, configure_logging
from poscore.db.session import get_db, init_db
from poscore.models import ZERO, OrderStatus, PaymentMethod, as_utc, to_money
from poscore.schemas.analytics import DailyProfit, ProfitAnalytics
from poscore.schemas.orders import (
    CreateOrderRequest,
    CreateOrderResponse,
    OrderOut,
    ProfitInfo,
    StatusUpdateRequest,
)
from poscore.services.assembler import OrderAssembler
from poscore.services.catalog import parse_id
from poscore.services.checkout import CommitCoordinator
from poscore.services.deps import (
    get_commit_coordinator,
    get_order_assembler,
    get_order_store,
    get_status_transition,
    require_user_id,
)
from poscore.services.order_store import OrderStore
from poscore.services.status import StatusTransition

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.create_tables_on_startup:
        init_db()
    yield


app = FastAPI(title="POS Core API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    clear_context()
    add_context(request_id=request.headers.get("x-request-id") or uuid.uuid4().hex)
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return response


@app.exception_handler(PosError)
async def pos_error_handler(_: Request, exc: PosError):
    content = exc.to_dict()
    if settings.is_production:
        content.pop("error", None)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # An order from an unidentified user is rejected before its body is judged.
    if request.method == "POST" and request.url.path == "/orders":
        body = exc.body if isinstance(exc.body, dict) else {}
        try:
            require_user_id(body.get("userId", body.get("user_id")))
        except AuthenticationError as auth_error:
            return await pos_error_handler(request, auth_error)

    errors = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(_: Request, exc: Exception):
    logger.exception("Unhandled error")
    content = {"message": "Server error occurred"}
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/orders", status_code=status.HTTP_201_CREATED, response_model=CreateOrderResponse)
def create_order(
    payload: CreateOrderRequest,
    db: Session = Depends(get_db),
    assembler: OrderAssembler = Depends(get_order_assembler),
    coordinator: CommitCoordinator = Depends(get_commit_coordinator),
):
    user_id = require_user_id(payload.user_id)
    logger.info("Processing order", user_id=user_id, lines=len(payload.items))

    cart = assembler.assemble(db, payload, created_by=user_id)
    order = coordinator.commit(db, cart)

    return CreateOrderResponse(
        order_id=order.id,
        order=OrderOut.from_order(order),
        profit_info=ProfitInfo(
            total_cost=float(order.total_cost),
            total_profit=float(order.total_profit),
            profit_margin=float(order.profit_margin),
        ),
    )


@app.get("/orders", response_model=list[OrderOut])
def list_orders(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    payment_method: PaymentMethod | None = Query(default=None, alias="paymentMethod"),
    db: Session = Depends(get_db),
    store: OrderStore = Depends(get_order_store),
):
    orders = store.find(db, start=start_date, end=end_date, status=order_status, payment_method=payment_method)
    return [OrderOut.from_order(order) for order in orders]


@app.get("/orders/analytics/profit", response_model=ProfitAnalytics)
def profit_analytics(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    store: OrderStore = Depends(get_order_store),
):
    rows = store.profit_rows(db, start=start_date, end=end_date)

    revenue = cost = profit = margin_sum = ZERO
    by_day: dict[str, dict] = defaultdict(lambda: {"revenue": ZERO, "cost": ZERO, "profit": ZERO, "order_count": 0})
    for row in rows:
        revenue += Decimal(str(row["total"]))
        cost += Decimal(str(row["total_cost"]))
        profit += Decimal(str(row["total_profit"]))
        margin_sum += Decimal(str(row["profit_margin"]))

        day = by_day[as_utc(row["created_at"]).date().isoformat()]
        day["revenue"] += Decimal(str(row["total"]))
        day["cost"] += Decimal(str(row["total_cost"]))
        day["profit"] += Decimal(str(row["total_profit"]))
        day["order_count"] += 1

    return ProfitAnalytics(
        total_revenue=float(to_money(revenue)),
        total_cost=float(to_money(cost)),
        total_profit=float(to_money(profit)),
        average_profit_margin=float(to_money(margin_sum / len(rows))) if rows else 0.0,
        order_count=len(rows),
        profit_by_day={
            key: DailyProfit(
                revenue=float(to_money(day["revenue"])),
                cost=float(to_money(day["cost"])),
                profit=float(to_money(day["profit"])),
                order_count=day["order_count"],
            )
            for key, day in by_day.items()
        },
    )


@app.get("/orders/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    store: OrderStore = Depends(get_order_store),
):
    order = store.get(db, parse_id(order_id))
    if order is None:
        raise OrderNotFoundError(orderId=order_id)
    return OrderOut.from_order(order)


@app.put("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    transitions: StatusTransition = Depends(get_status_transition),
):
    order = transitions.apply(db, order_id, payload.status)
    return OrderOut.from_order(order)


