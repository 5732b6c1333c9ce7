# Overview: Service-layer operations for orders and subscriptions; builds the order queries and runs them.

"""
Order / Subscription Query Engine

One statement shape serves every order read. What varies is captured by a
small family of query variants:

- ByIdQuery:               one order by id, widget of either kind, unbounded
- PagedOrdersQuery:        non-recurring widgets, LIMIT/OFFSET
- PagedSubscriptionsQuery: recurring widgets, LIMIT/OFFSET

build_orders_statement() turns a variant into a SQLAlchemy Select; its SQL
text and bound parameters can be inspected with compile_statement().

Pagination runs two statements (page rows, then COUNT) that are not one
snapshot: an order inserted between them is counted but may not appear on
the page. last_page is floor(total_records / page_size); callers handle a
partial final page themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func, select, update
from sqlalchemy.sql import Select

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Order, Transaction, Widget
from .concurrency import run_bounded
from storefront.time_utils import to_utc_z


# Order statuses (statuses table)
ORDER_STATUS_CLEARED = 1
ORDER_STATUS_REFUNDED = 2
ORDER_STATUS_CANCELLED = 3

# Transaction statuses (transaction_statuses table)
TXN_STATUS_PENDING = 1
TXN_STATUS_CLEARED = 2
TXN_STATUS_DECLINED = 3
TXN_STATUS_REFUNDED = 4
TXN_STATUS_PARTIALLY_REFUNDED = 5


# =============================================================================
# QUERY VARIANTS
# =============================================================================

@dataclass(frozen=True)
class ByIdQuery:
    order_id: int


@dataclass(frozen=True)
class PagedOrdersQuery:
    page_size: int
    page: int
    recurring: bool = field(default=False, init=False)

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        if self.page < 1:
            raise ValueError("page must be at least 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class PagedSubscriptionsQuery(PagedOrdersQuery):
    recurring: bool = field(default=True, init=False)


OrdersQuery = ByIdQuery | PagedOrdersQuery


def _order_columns():
    return (
        Order.id, Order.widget_id, Order.transaction_id, Order.customer_id,
        Order.status_id, Order.quantity, Order.amount, Order.created_at,
        Order.updated_at,
        Widget.id.label("w_id"), Widget.name.label("w_name"),
        Transaction.id.label("t_id"), Transaction.amount.label("t_amount"),
        Transaction.currency.label("t_currency"), Transaction.last_four.label("t_last_four"),
        Transaction.expiry_month.label("t_expiry_month"), Transaction.expiry_year.label("t_expiry_year"),
        Transaction.payment_intent.label("t_payment_intent"),
        Transaction.bank_return_code.label("t_bank_return_code"),
        Customer.id.label("c_id"), Customer.first_name.label("c_first_name"),
        Customer.last_name.label("c_last_name"), Customer.email.label("c_email"),
    )


def _joined(stmt: Select) -> Select:
    return stmt.select_from(Order).outerjoin(
        Widget, Order.widget_id == Widget.id
    ).outerjoin(
        Transaction, Order.transaction_id == Transaction.id
    ).outerjoin(
        Customer, Order.customer_id == Customer.id
    )


def build_orders_statement(query: OrdersQuery) -> Select:
    """Build the SELECT for a query variant."""
    stmt = _joined(select(*_order_columns()))

    if isinstance(query, ByIdQuery):
        stmt = stmt.where(
            Widget.is_recurring.in_([True, False]),
            Order.id == query.order_id,
        )
    elif isinstance(query, PagedOrdersQuery):
        stmt = stmt.where(
            Widget.is_recurring == query.recurring,
            Order.id != 0,
        )
    else:
        raise TypeError(f"Unsupported orders query: {query!r}")

    stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())

    if isinstance(query, PagedOrdersQuery):
        stmt = stmt.limit(query.page_size).offset(query.offset)

    return stmt


def build_count_statement(recurring: bool) -> Select:
    """COUNT over the same partition the paged variants read."""
    return select(func.count(Order.id)).select_from(Order).outerjoin(
        Widget, Order.widget_id == Widget.id
    ).where(Widget.is_recurring == recurring)


def compile_statement(stmt: Select) -> tuple[str, dict]:
    """SQL text and bound parameters of a statement for the current engine."""
    compiled = stmt.compile(db.engine)
    return str(compiled), dict(compiled.params)


def _row_to_order(row) -> dict:
    return {
        "id": row.id,
        "widget_id": row.widget_id,
        "transaction_id": row.transaction_id,
        "customer_id": row.customer_id,
        "status_id": row.status_id,
        "quantity": row.quantity,
        "amount": row.amount,
        "created_at": to_utc_z(row.created_at),
        "updated_at": to_utc_z(row.updated_at),
        "widget": {
            "id": row.w_id,
            "name": row.w_name,
        },
        "transaction": {
            "id": row.t_id,
            "amount": row.t_amount,
            "currency": row.t_currency,
            "last_four": row.t_last_four,
            "expiry_month": row.t_expiry_month,
            "expiry_year": row.t_expiry_year,
            "payment_intent": row.t_payment_intent,
            "bank_return_code": row.t_bank_return_code,
        },
        "customer": {
            "id": row.c_id,
            "first_name": row.c_first_name,
            "last_name": row.c_last_name,
            "email": row.c_email,
        },
    }


# =============================================================================
# READS
# =============================================================================

@dataclass
class OrderPage:
    orders: list[dict]
    last_page: int
    total_records: int
    current_page: int
    page_size: int

    def to_dict(self) -> dict:
        return {
            "current_page": self.current_page,
            "page_size": self.page_size,
            "last_page": self.last_page,
            "total_records": self.total_records,
            "orders": self.orders,
        }


def get_order_by_id(order_id: int) -> dict:
    """
    Fetch one order with its widget, transaction and customer.

    Raises NotFoundError if no order has this id.
    """
    stmt = build_orders_statement(ByIdQuery(order_id))

    def _op(deadline):
        row = db.session.execute(stmt).first()
        if row is None:
            raise NotFoundError(f"Order {order_id} not found")
        return _row_to_order(row)

    return run_bounded(_op)


def list_paged(page_size: int, page: int, recurring: bool) -> OrderPage:
    """
    One page of orders (recurring=False) or subscriptions (recurring=True),
    most recent first.
    """
    if recurring:
        query = PagedSubscriptionsQuery(page_size, page)
    else:
        query = PagedOrdersQuery(page_size, page)

    stmt = build_orders_statement(query)
    count_stmt = build_count_statement(query.recurring)

    def _op(deadline):
        orders = [_row_to_order(row) for row in db.session.execute(stmt)]
        deadline.check()

        total_records = db.session.execute(count_stmt).scalar_one()

        return OrderPage(
            orders=orders,
            last_page=total_records // page_size,
            total_records=total_records,
            current_page=page,
            page_size=page_size,
        )

    return run_bounded(_op)


def list_orders_paged(page_size: int, page: int) -> OrderPage:
    return list_paged(page_size, page, recurring=False)


def list_subscriptions_paged(page_size: int, page: int) -> OrderPage:
    return list_paged(page_size, page, recurring=True)


def get_widget(widget_id: int) -> Widget:
    """Raises NotFoundError if no widget has this id."""
    def _op(deadline):
        widget = db.session.get(Widget, widget_id)
        if not widget:
            raise NotFoundError(f"Widget {widget_id} not found")
        return widget

    return run_bounded(_op)


# =============================================================================
# WRITES
# =============================================================================

def update_order_status(order_id: int, status_id: int) -> None:
    """
    Set an order's status.

    status_id is not validated, and an unknown order_id updates nothing
    without raising.
    """
    stmt = update(Order).where(Order.id == order_id).values(status_id=status_id)

    def _op(deadline):
        db.session.execute(stmt)

    run_bounded(_op, commit=True)


def update_transaction_status(transaction_id: int, status_id: int) -> None:
    """Same contract as update_order_status, for transactions."""
    stmt = update(Transaction).where(Transaction.id == transaction_id).values(
        transaction_status_id=status_id
    )

    def _op(deadline):
        db.session.execute(stmt)

    run_bounded(_op, commit=True)


def _insert(record) -> int:
    def _op(deadline):
        db.session.add(record)
        db.session.flush()
        return record.id

    return run_bounded(_op, commit=True)


def insert_transaction(
    *,
    amount: int,
    currency: str,
    last_four: str,
    bank_return_code: str,
    expiry_month: int,
    expiry_year: int,
    payment_intent: str,
    payment_method: str,
    transaction_status_id: int,
) -> int:
    """Record a payment attempt and return its id."""
    return _insert(Transaction(
        amount=amount,
        currency=currency,
        last_four=last_four,
        bank_return_code=bank_return_code,
        expiry_month=expiry_month,
        expiry_year=expiry_year,
        payment_intent=payment_intent,
        payment_method=payment_method,
        transaction_status_id=transaction_status_id,
    ))


def insert_customer(*, first_name: str, last_name: str, email: str) -> int:
    """Record a buyer and return their id."""
    return _insert(Customer(first_name=first_name, last_name=last_name, email=email))


def insert_order(
    *,
    widget_id: int,
    transaction_id: int,
    customer_id: int,
    status_id: int,
    quantity: int,
    amount: int,
) -> int:
    """Record an order and return its id."""
    return _insert(Order(
        widget_id=widget_id,
        transaction_id=transaction_id,
        customer_id=customer_id,
        status_id=status_id,
        quantity=quantity,
        amount=amount,
    ))
