# -*- coding: utf-8 -*-
"""
Order and payment ledger.

Status policy at creation:

    cash                    -> completed
    transfer, cod, paylater -> pending (admin approves or rejects)

Paylater orders get ``due_date = created_at + PAYLATER_TERM_DAYS`` and move
to ``paid`` once the payments cover the total. Payments are append-only.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from flask import current_app
from sqlalchemy import func, select, update

from ..errors import InvalidAmount, InvalidRequest, InvalidState, NotFound, OverpaymentRejected
from ..extensions import db
from ..logging_config import get_logger
from ..models.catalog import Product
from ..models.order import (
    METHOD_CASH,
    METHOD_PAYLATER,
    PAYMENT_METHODS,
    STATUS_APPROVED,
    STATUS_COMPLETED,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_REJECTED,
    Order,
    OrderItem,
    Payment,
)
from ..models.report import INCOME
from ..utils import D, quantize, utcnow
from . import credit, reports

log = get_logger(__name__)

# statuses that still accept repayments
_PAYABLE = (STATUS_PENDING, STATUS_APPROVED, STATUS_COMPLETED)


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return D(self.unit_price) * self.quantity


def initial_status(method: str) -> str:
    return STATUS_COMPLETED if method == METHOD_CASH else STATUS_PENDING


def compute_total(items: Iterable[LineItem]) -> Decimal:
    return quantize(sum((i.line_total for i in items), Decimal("0")))


def get_order(order_id: int) -> Order:
    order = db.session.execute(
        select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if order is None:
        raise NotFound(f"Order #{order_id} not found.")
    return order


def create_order(owner_id: int, items: list[LineItem], method: str, now: datetime | None = None) -> Order:
    """Order and its line items, flushed in the caller's transaction."""
    if method not in PAYMENT_METHODS:
        raise InvalidRequest(f"Unknown payment method: {method}")
    if not items:
        raise InvalidRequest("Cart is empty.")
    for i in items:
        if int(i.quantity) <= 0:
            raise InvalidRequest("Quantity must be positive.")

    now = now or utcnow()
    due = None
    if method == METHOD_PAYLATER:
        due = now + timedelta(days=int(current_app.config["PAYLATER_TERM_DAYS"]))

    order = Order(
        user_id=owner_id,
        total_amount=compute_total(items),
        payment_method=method,
        status=initial_status(method),
        created_at=now,
        due_date=due,
        version=0,
    )
    db.session.add(order)
    db.session.flush()
    for i in items:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=i.product_id,
            quantity=int(i.quantity),
            unit_price=quantize(i.unit_price),
        ))
    db.session.flush()
    log.info(f"[Order: {order.id}] created for user {owner_id}: {method}, total={order.total_amount}, status={order.status}")
    return order


def total_paid(order_id: int) -> Decimal:
    return D(db.session.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.order_id == order_id)
    ).scalar())


def remaining(order: Order) -> Decimal:
    return max(D(order.total_amount) - total_paid(order.id), Decimal("0"))


def is_settled(order: Order) -> bool:
    return remaining(order) == 0


def _bump_version(order: Order, expected: int, **values) -> None:
    res = db.session.execute(
        update(Order)
        .where(Order.id == order.id, Order.version == expected)
        .values(version=expected + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        log.warning(f"[Order: {order.id}] concurrent change detected (version {expected})")
        raise InvalidState("The order was changed by another session. Reload and try again.")


def record_payment(order_id: int, owner_id: int, amount, method: str, note: str = "",
                   now: datetime | None = None) -> Payment:
    """Appends a payment; the order becomes ``paid`` when nothing remains."""
    amount = quantize(amount)
    if amount <= 0:
        raise InvalidAmount()

    order = get_order(order_id)
    if order.status not in _PAYABLE:
        raise InvalidState(f"Order #{order.id} is {order.status}.")
    version = int(order.version or 0)

    left = remaining(order)
    if amount > left:
        log.warning(f"[Order: {order.id}] overpayment refused: {amount} > {left}")
        raise OverpaymentRejected()

    pay = Payment(
        order_id=order.id,
        user_id=owner_id,
        amount=amount,
        method=method,
        note=note or f"Payment for order #{order.id}",
        created_at=now or utcnow(),
    )
    db.session.add(pay)
    db.session.flush()

    values = {}
    if remaining(order) == 0:
        values["status"] = STATUS_PAID
    _bump_version(order, version, **values)
    log.info(f"[Order: {order.id}] payment {amount} recorded, remaining={left - amount}"
             + (", settled" if values else ""))
    return pay


def _restock(order: Order) -> None:
    for item in order.items:
        db.session.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(stock=Product.stock + item.quantity)
            .execution_options(synchronize_session=False)
        )


def approve(order_id: int) -> Order:
    order = get_order(order_id)
    if order.status != STATUS_PENDING:
        raise InvalidState(f"Order #{order.id} is {order.status}, only pending orders can be approved.")
    _bump_version(order, int(order.version or 0), status=STATUS_APPROVED)
    log.info(f"[Order: {order.id}] approved")
    return get_order(order_id)


def reject(order_id: int) -> Order:
    """Rejects a pending order: stock goes back, paylater credit is released
    and the checkout income is reversed. Orders with payments cannot be rejected."""
    order = get_order(order_id)
    if order.status != STATUS_PENDING:
        raise InvalidState(f"Order #{order.id} is {order.status}, only pending orders can be rejected.")
    paid = total_paid(order.id)
    if paid > 0:
        raise InvalidState(f"Order #{order.id} already has payments of {paid}, it cannot be rejected.")
    total = D(order.total_amount)
    _bump_version(order, int(order.version or 0), status=STATUS_REJECTED)
    _restock(order)
    if order.is_paylater and total > 0:
        credit.decrease_used(order.user_id, total)
    # negative income cancels the entry written at checkout
    reports.append_entry(INCOME, f"Order #{order.id} rejected - reversal", -total)
    log.info(f"[Order: {order.id}] rejected, stock restored, income {total} reversed"
             + (", credit released" if order.is_paylater else ""))
    return get_order(order_id)


def outstanding(order: Order) -> Decimal:
    """What the owner still owes: only payable paylater orders carry a debt."""
    if not order.is_paylater or order.status not in _PAYABLE:
        return Decimal("0")
    return remaining(order)


def list_orders(owner_id: int | None = None) -> list[Order]:
    q = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if owner_id is not None:
        q = q.where(Order.user_id == owner_id)
    return list(db.session.execute(q.execution_options(populate_existing=True)).scalars().all())


def outstanding_paylater(owner_id: int) -> list[Order]:
    q = (
        select(Order)
        .where(
            Order.user_id == owner_id,
            Order.payment_method == METHOD_PAYLATER,
            Order.status.in_(_PAYABLE),
        )
        .order_by(Order.due_date.asc(), Order.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(db.session.execute(q).scalars().all())
