# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint
from flask_login import current_user, login_required

from ...ledger import billing, orders
from ...models.order import METHOD_TRANSFER
from ...security import payload, reply, roles_required
from ...utils import fmt_rupiah, parse_amount

bp = Blueprint("billing", __name__, url_prefix="/billing")


@bp.get("/")
@login_required
def index():
    """Credit summary and outstanding paylater bills of the current user."""
    return reply(**billing.statement(current_user.id))


@bp.post("/<int:order_id>/pay")
@roles_required("customer")
def pay(order_id: int):
    f = payload()
    raw = f.get("amount")
    # empty or "full" -> pay the rest of the bill
    full = raw is None or str(raw).strip().lower() in ("", "full")
    amount = None if full else parse_amount(raw)
    method = (f.get("method") or METHOD_TRANSFER).strip().lower()
    note = (f.get("note") or "").strip()

    payment = billing.pay(current_user, order_id, amount, method, note)
    order = orders.get_order(order_id)
    left = orders.remaining(order)
    return reply(
        f"Payment of {fmt_rupiah(payment.amount)} received!",
        status=201,
        payment=payment.as_dict(),
        remaining=left,
        settled=left == 0,
        order_status=order.status,
    )
