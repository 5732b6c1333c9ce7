from __future__ import annotations

from ..extensions import db


class Status(db.Model):
    """Order status lookup (Cleared, Refunded, Cancelled)."""
    __tablename__ = "statuses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class TransactionStatus(db.Model):
    """Payment attempt status lookup (Pending, Cleared, Declined, ...)."""
    __tablename__ = "transaction_statuses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class Transaction(db.Model):
    """
    Outcome of one payment attempt at the payment gateway.

    Rows are written once at checkout. Only transaction_status_id changes
    afterwards (refunds, disputes), driven by the gateway.
    """
    __tablename__ = "transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    # Amount in cents
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False)

    # Only the masked suffix of the card is ever stored
    last_four = db.Column(db.String(4), nullable=False, default="")
    bank_return_code = db.Column(db.String(255), nullable=False, default="")
    expiry_month = db.Column(db.Integer, nullable=False, default=0)
    expiry_year = db.Column(db.Integer, nullable=False, default=0)

    payment_intent = db.Column(db.String(255), nullable=False, default="")
    payment_method = db.Column(db.String(255), nullable=False, default="")

    transaction_status_id = db.Column(
        db.Integer, db.ForeignKey("transaction_statuses.id"), nullable=False, index=True
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class Customer(db.Model):
    """
    Buyer captured at checkout.

    A new row is written for every checkout; customers are not matched
    against earlier purchases by email.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class Order(db.Model):
    """
    A purchase of one widget.

    Orders of recurring widgets are the storefront's "subscriptions"; there
    is no separate subscription table.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    widget_id = db.Column(db.Integer, db.ForeignKey("widgets.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Not a foreign key: status ids are validated by callers, not the store
    status_id = db.Column(db.Integer, nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)

    # Amount in cents
    amount = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    widget = db.relationship("Widget", backref=db.backref("orders", lazy=True))
    transaction = db.relationship("Transaction", backref=db.backref("orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
