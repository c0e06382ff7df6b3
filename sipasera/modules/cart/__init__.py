# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, session
from flask_login import current_user, login_required

from ...errors import InvalidRequest, NotFound
from ...extensions import db
from ...ledger import checkout as checkout_svc
from ...ledger import credit, orders
from ...models.catalog import Product
from ...models.order import METHOD_CASH
from ...security import payload, reply, roles_required
from ...utils import fmt_rupiah

bp = Blueprint("cart", __name__, url_prefix="/cart")

# cart lives in the session: {"<product_id>": qty}
_SESSION_KEY = "cart"


def _cart() -> dict[str, int]:
    raw = session.get(_SESSION_KEY) or {}
    return {str(k): int(v) for k, v in raw.items() if int(v) > 0}


def _save(cart: dict[str, int]) -> None:
    session[_SESSION_KEY] = cart
    session.modified = True


def clear_cart() -> None:
    session.pop(_SESSION_KEY, None)


def _int(v, field: str) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        raise InvalidRequest(f"Invalid {field}.")


@bp.get("/")
@login_required
def index():
    cart = _cart()
    lines = []
    total = 0
    for pid, qty in cart.items():
        p = db.session.get(Product, int(pid))
        if not p:
            continue
        line_total = p.price * qty
        total += line_total
        lines.append({**p.as_dict(), "quantity": qty, "line_total": line_total})
    acc = credit.get_account(current_user.id)
    return reply(items=lines, total=total, total_display=fmt_rupiah(total),
                 credit=acc.as_dict() if acc else None)


@bp.post("/add")
@roles_required("customer")
def add():
    f = payload()
    pid = _int(f.get("product_id"), "product")
    qty = _int(f.get("quantity") or 1, "quantity")
    if qty <= 0:
        raise InvalidRequest("Quantity must be positive.")
    p = db.session.get(Product, pid)
    if not p or not p.is_active:
        raise NotFound(f"Product #{pid} not found.")
    if int(p.stock or 0) <= 0:
        raise InvalidRequest(f"{p.name} is out of stock.")
    cart = _cart()
    cart[str(pid)] = cart.get(str(pid), 0) + qty
    _save(cart)
    return reply(f"{p.name} added to cart.", cart=cart)


@bp.post("/update")
@roles_required("customer")
def update():
    f = payload()
    pid = _int(f.get("product_id"), "product")
    qty = _int(f.get("quantity"), "quantity")
    cart = _cart()
    if qty <= 0:
        cart.pop(str(pid), None)
    else:
        cart[str(pid)] = qty
    _save(cart)
    return reply(cart=cart)


@bp.post("/checkout")
@roles_required("customer")
def checkout():
    f = payload()
    method = (f.get("payment_method") or METHOD_CASH).strip().lower()
    cart = _cart()
    order = checkout_svc.checkout(current_user, [(int(k), v) for k, v in cart.items()], method)
    clear_cart()
    return reply("Order placed!", status=201, order=order.as_dict(),
                 remaining=orders.remaining(order))
