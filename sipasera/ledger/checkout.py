# -*- coding: utf-8 -*-
"""
Checkout: validates a cart against the catalog and the buyer's credit, then
creates the order, takes the stock, draws paylater credit and writes the
income entry in one transaction.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import select, update

from ..errors import CreditNotEligible, InsufficientCredit, InsufficientStock, InvalidRequest, NoCreditAccount, NotFound
from ..extensions import db
from ..logging_config import get_logger
from ..models.catalog import Product
from ..models.order import METHOD_PAYLATER, PAYMENT_METHODS, Order
from ..models.report import INCOME
from ..utils import D, fmt_rupiah
from . import credit, orders, reports, unit_of_work

log = get_logger(__name__)


def _normalize_cart(cart) -> dict[int, int]:
    """[(product_id, qty), ...] or {product_id: qty} -> {product_id: qty}; duplicates merged."""
    pairs = cart.items() if isinstance(cart, dict) else cart
    lines: dict[int, int] = {}
    for product_id, qty in pairs or []:
        try:
            pid, q = int(product_id), int(qty)
        except (TypeError, ValueError):
            raise InvalidRequest("Malformed cart line.")
        if q <= 0:
            raise InvalidRequest("Quantity must be positive.")
        lines[pid] = lines.get(pid, 0) + q
    if not lines:
        raise InvalidRequest("Cart is empty.")
    return lines


def price_cart(cart) -> list[orders.LineItem]:
    """Line items at current catalog prices; checks existence and stock."""
    lines = _normalize_cart(cart)
    products = {
        p.id: p for p in db.session.execute(
            select(Product)
            .where(Product.id.in_(lines.keys()))
            .execution_options(populate_existing=True)
        ).scalars().all()
    }
    items = []
    for pid, qty in lines.items():
        p = products.get(pid)
        if p is None or not p.is_active:
            raise NotFound(f"Product #{pid} not found.")
        if int(p.stock or 0) < qty:
            raise InsufficientStock(f"Not enough stock for {p.name} (left: {p.stock}).")
        items.append(orders.LineItem(product_id=pid, quantity=qty, unit_price=D(p.price)))
    return items


def check_paylater(owner_id: int, total) -> None:
    acc = credit.get_account(owner_id)
    if acc is None:
        raise NoCreditAccount()
    if D(acc.credit_limit) <= D(current_app.config["NOMINAL_CREDIT_LIMIT"]):
        raise CreditNotEligible()
    if D(total) > acc.available:
        log.warning(f"[User: {owner_id}] paylater checkout refused: total={total}, available={acc.available}")
        raise InsufficientCredit()


def _take_stock(item: orders.LineItem) -> None:
    res = db.session.execute(
        update(Product)
        .where(Product.id == item.product_id, Product.stock >= item.quantity)
        .values(stock=Product.stock - item.quantity)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        raise InsufficientStock(f"Stock for product #{item.product_id} ran out.")


def checkout(owner, cart, method: str) -> Order:
    """Places an order for ``owner`` (a User). Returns the committed order."""
    if method not in PAYMENT_METHODS:
        raise InvalidRequest(f"Unknown payment method: {method}")

    # pre-flight, nothing written yet
    items = price_cart(cart)
    total = orders.compute_total(items)
    if method == METHOD_PAYLATER:
        check_paylater(owner.id, total)

    with unit_of_work(f"[User: {owner.id}] checkout"):
        order = orders.create_order(owner.id, items, method)
        for item in items:
            _take_stock(item)
        if method == METHOD_PAYLATER:
            credit.increase_used(owner.id, total)
        reports.append_entry(
            INCOME,
            f"Order #{order.id} ({method}) - {owner.name}",
            total,
        )
    log.info(f"[Order: {order.id}] checkout done: {fmt_rupiah(total)} via {method}")
    return orders.get_order(order.id)
