# -*- coding: utf-8 -*-
"""
Billing: repayments against outstanding paylater orders.
"""
from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal

from ..errors import Forbidden, InvalidAmount, InvalidRequest, InvalidState, OverpaymentRejected
from ..logging_config import get_logger
from ..models.order import METHOD_PAYLATER, METHOD_TRANSFER, Order, Payment
from ..models.report import INCOME
from ..utils import D, fmt_rupiah, quantize, utcnow
from . import credit, orders, reports, unit_of_work

log = get_logger(__name__)

REPAYMENT_METHODS = ("transfer", "cash")


def days_remaining(due_date: datetime | None, now: datetime | None = None) -> int | None:
    if due_date is None:
        return None
    now = now or utcnow()
    return math.ceil((due_date - now).total_seconds() / 86400)


def bill(order: Order, now: datetime | None = None) -> dict:
    paid = orders.total_paid(order.id)
    left = max(D(order.total_amount) - paid, Decimal("0"))
    days = days_remaining(order.due_date, now)
    return {
        **order.as_dict(),
        "paid": paid,
        "remaining": left,
        "days_remaining": days,
        "overdue": days is not None and days < 0 and left > 0,
        "payments": [p.as_dict() for p in order.payments],
    }


def statement(owner_id: int, now: datetime | None = None) -> dict:
    acc = credit.get_account(owner_id)
    return {
        "credit": acc.as_dict() if acc else None,
        "bills": [bill(o, now) for o in orders.outstanding_paylater(owner_id)],
    }


def _payable_order(owner, order_id: int) -> Order:
    order = orders.get_order(order_id)
    if order.user_id != owner.id:
        raise Forbidden()
    if order.payment_method != METHOD_PAYLATER:
        raise InvalidState(f"Order #{order.id} is not a paylater order.")
    return order


def pay(owner, order_id: int, amount=None, method: str = METHOD_TRANSFER, note: str = "") -> Payment:
    """Repays ``amount`` of a paylater order; ``amount=None`` pays the rest in full."""
    if method not in REPAYMENT_METHODS:
        raise InvalidRequest(f"Unknown repayment method: {method}")
    order = _payable_order(owner, order_id)
    left = orders.remaining(order)
    if left <= 0:
        raise InvalidState(f"Order #{order.id} is already settled.")

    amount = left if amount is None else quantize(amount)
    if amount <= 0:
        raise InvalidAmount()
    if amount > left:
        log.warning(f"[Order: {order.id}] repayment of {amount} refused, remaining={left}")
        raise OverpaymentRejected()

    with unit_of_work(f"[Order: {order.id}] repayment"):
        payment = orders.record_payment(order.id, owner.id, amount, method, note)
        credit.decrease_used(owner.id, amount)
        reports.append_entry(
            INCOME,
            f"Payment for order #{order.id} - {owner.name}",
            amount,
        )
    log.info(f"[Order: {order.id}] repayment of {fmt_rupiah(amount)} by user {owner.id} committed")
    return payment
