# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date

from flask import Blueprint, request
from flask_login import current_user

from ...errors import InvalidRequest
from ...ledger import reports, unit_of_work
from ...security import payload, reply, roles_required
from ...utils import parse_amount

bp = Blueprint("finance", __name__, url_prefix="/finance")


def _date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        raise InvalidRequest(f"Invalid date: {raw}")


@bp.get("/report")
@roles_required("admin")
def report():
    a = request.args
    s = reports.summary(
        report_type=(a.get("type") or "all").strip().lower(),
        start=_date(a.get("start")),
        end=_date(a.get("end")),
    )
    return reply(
        entries=[e.as_dict() for e in s["entries"]],
        total_income=s["total_income"],
        total_expense=s["total_expense"],
        net_profit=s["net_profit"],
    )


@bp.get("/expenses")
@roles_required("admin")
def expenses():
    return reply(
        expenses=[e.as_dict() for e in reports.list_expenses()],
        totals=reports.expense_totals_by_type(),
    )


@bp.post("/expenses")
@roles_required("admin")
def add_expense():
    f = payload()
    with unit_of_work(f"[Admin: {current_user.id}] operational expense"):
        exp = reports.record_expense(
            current_user,
            (f.get("expense_type") or "other").strip().lower(),
            f.get("description") or "",
            parse_amount(f.get("amount")),
            _date(f.get("expense_date")),
        )
    return reply("Operational expense added!", status=201, expense=exp.as_dict())


@bp.get("/dashboard")
@roles_required("admin")
def dashboard():
    return reply(**reports.dashboard())
