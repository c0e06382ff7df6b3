# -*- coding: utf-8 -*-
from __future__ import annotations

from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..utils import D, utcnow


METHOD_CASH = "cash"
METHOD_TRANSFER = "transfer"
METHOD_COD = "cod"
METHOD_PAYLATER = "paylater"
PAYMENT_METHODS = (METHOD_CASH, METHOD_TRANSFER, METHOD_COD, METHOD_PAYLATER)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_COMPLETED = "completed"
STATUS_PAID = "paid"


class Order(db.Model):
    __tablename__ = "order"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)  # cash|transfer|cod|paylater
    status = db.Column(db.String(16), nullable=False, index=True)  # pending|approved|rejected|completed|paid
    created_at = db.Column(db.DateTime, default=utcnow)
    due_date = db.Column(db.DateTime, nullable=True)  # paylater only
    # bumped by every payment, approval and rejection; guards concurrent writers
    version = db.Column(db.Integer, nullable=False, default=0)

    user = db.relationship("User", lazy="joined")
    items = db.relationship("OrderItem", backref="order", lazy="selectin", order_by="OrderItem.id")
    payments = db.relationship("Payment", backref="order", lazy="selectin", order_by="Payment.id")

    @property
    def is_paylater(self) -> bool:
        return self.payment_method == METHOD_PAYLATER

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "customer": self.user.name if self.user else "",
            "total_amount": D(self.total_amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "items": [i.as_dict() for i in self.items],
        }


class OrderItem(db.Model):
    """Line item; unit_price is the catalog price at checkout time."""
    __tablename__ = "order_item"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(14, 2), nullable=False)

    product = db.relationship("Product", lazy="joined")

    __table_args__ = (db.CheckConstraint("quantity > 0", name="ck_order_item_qty"),)

    @hybrid_property
    def line_total(self) -> Decimal:
        return D(self.unit_price) * int(self.quantity or 0)

    @line_total.expression
    def line_total(cls):
        return func.coalesce(cls.unit_price, 0) * cls.quantity

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else "",
            "quantity": self.quantity,
            "unit_price": D(self.unit_price),
            "line_total": self.line_total,
        }


class Payment(db.Model):
    """Append-only repayment against one order."""
    __tablename__ = "payment"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    method = db.Column(db.String(16), default=METHOD_TRANSFER)
    note = db.Column(db.String(255), default="")
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (db.CheckConstraint("amount > 0", name="ck_payment_amount_pos"),)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount": D(self.amount),
            "method": self.method,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
