from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Widget(db.Model):
    """
    Catalog item sold by the storefront.

    is_recurring partitions orders: a widget with is_recurring=True is sold
    as a subscription (billed through plan_id at the payment gateway), any
    other widget is a one-off order.
    """
    __tablename__ = "widgets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    inventory_level = db.Column(db.Integer, nullable=False, default=0)

    # Price in cents
    price = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(255), nullable=False, default="")

    is_recurring = db.Column(db.Boolean, nullable=False, default=False, index=True)
    plan_id = db.Column(db.String(255), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "inventory_level": self.inventory_level,
            "price": self.price,
            "image": self.image,
            "is_recurring": self.is_recurring,
            "plan_id": self.plan_id,
            "created_at": to_utc_z(self.created_at),
        }
