# -*- coding: utf-8 -*-
"""
Financial report trail, operational expenses and admin dashboard figures.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select

from ..errors import InvalidAmount, InvalidRequest
from ..extensions import db
from ..logging_config import get_logger
from ..models.catalog import Product
from ..models.order import STATUS_REJECTED, Order
from ..models.report import EXPENSE, EXPENSE_TYPES, INCOME, FinancialReportEntry, OperationalExpense
from ..utils import D, quantize, utcnow
from . import credit, require_admin

log = get_logger(__name__)


def append_entry(report_type: str, description: str, amount) -> FinancialReportEntry:
    if report_type not in (INCOME, EXPENSE):
        raise InvalidRequest(f"Unknown report type: {report_type}")
    entry = FinancialReportEntry(
        report_type=report_type,
        description=description,
        amount=quantize(amount),
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_expense(actor, expense_type: str, description: str, amount, expense_date: date | None = None) -> OperationalExpense:
    require_admin(actor)
    if expense_type not in EXPENSE_TYPES:
        raise InvalidRequest(f"Unknown expense type: {expense_type}")
    amount = quantize(amount)
    if amount <= 0:
        raise InvalidAmount()
    exp = OperationalExpense(
        expense_type=expense_type,
        description=(description or "").strip(),
        amount=amount,
        expense_date=expense_date or utcnow().date(),
        created_by=actor.id,
    )
    db.session.add(exp)
    append_entry(EXPENSE, f"{expense_type.upper()} - {exp.description}", amount)
    log.info(f"[Expense] {expense_type} {amount} recorded by admin {actor.id}")
    return exp


def list_expenses() -> list[OperationalExpense]:
    q = select(OperationalExpense).order_by(OperationalExpense.expense_date.desc(), OperationalExpense.id.desc())
    return list(db.session.execute(q).scalars().all())


def expense_totals_by_type() -> dict[str, Decimal]:
    rows = db.session.execute(
        select(OperationalExpense.expense_type, func.coalesce(func.sum(OperationalExpense.amount), 0))
        .group_by(OperationalExpense.expense_type)
    ).all()
    totals = {t: Decimal("0") for t in EXPENSE_TYPES}
    for t, s in rows:
        totals[t] = D(s)
    return totals


def summary(report_type: str | None = None, start: date | None = None, end: date | None = None) -> dict:
    """Entries filtered by type and an inclusive date range, with totals."""
    q = select(FinancialReportEntry).order_by(FinancialReportEntry.created_at.desc(), FinancialReportEntry.id.desc())
    if report_type and report_type != "all":
        if report_type not in (INCOME, EXPENSE):
            raise InvalidRequest(f"Unknown report type: {report_type}")
        q = q.where(FinancialReportEntry.report_type == report_type)
    if start:
        q = q.where(FinancialReportEntry.created_at >= datetime.combine(start, datetime.min.time()))
    if end:
        q = q.where(FinancialReportEntry.created_at < datetime.combine(end + timedelta(days=1), datetime.min.time()))
    entries = list(db.session.execute(q).scalars().all())

    income = sum((D(e.amount) for e in entries if e.report_type == INCOME), Decimal("0"))
    expense = sum((D(e.amount) for e in entries if e.report_type == EXPENSE), Decimal("0"))
    return {
        "entries": entries,
        "total_income": income,
        "total_expense": expense,
        "net_profit": income - expense,
    }


def dashboard() -> dict:
    products = db.session.execute(select(func.count(Product.id))).scalar() or 0
    by_status = dict(db.session.execute(select(Order.status, func.count(Order.id)).group_by(Order.status)).all())
    revenue = db.session.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(Order.status != STATUS_REJECTED)
    ).scalar()
    return {
        "total_products": int(products),
        "total_orders": int(sum(by_status.values())),
        "orders_by_status": {k: int(v) for k, v in by_status.items()},
        "total_revenue": D(revenue),
        "total_used_credit": credit.total_used_credit(),
    }
