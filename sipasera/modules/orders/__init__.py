# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint
from flask_login import current_user, login_required

from ...errors import NotFound
from ...ledger import orders, unit_of_work
from ...security import reply, roles_required

bp = Blueprint("orders", __name__, url_prefix="/orders")


@bp.get("/")
@login_required
def index():
    owner = None if current_user.is_admin else current_user.id
    return reply(orders=[o.as_dict() for o in orders.list_orders(owner)])


@bp.get("/<int:order_id>")
@login_required
def view(order_id: int):
    o = orders.get_order(order_id)
    if not current_user.is_admin and o.user_id != current_user.id:
        raise NotFound(f"Order #{order_id} not found.")
    return reply(order=o.as_dict(), paid=orders.total_paid(o.id), remaining=orders.outstanding(o))


@bp.post("/<int:order_id>/approve")
@roles_required("admin")
def approve(order_id: int):
    with unit_of_work(f"[Order: {order_id}] approve"):
        o = orders.approve(order_id)
    return reply(f"Order #{o.id} approved.", order=o.as_dict())


@bp.post("/<int:order_id>/reject")
@roles_required("admin")
def reject(order_id: int):
    with unit_of_work(f"[Order: {order_id}] reject"):
        o = orders.reject(order_id)
    return reply(f"Order #{o.id} rejected.", order=o.as_dict())
