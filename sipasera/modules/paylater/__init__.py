# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request
from flask_login import current_user, login_required

from ...ledger import applications, unit_of_work
from ...models.credit import APP_APPROVED
from ...security import payload, reply, roles_required
from ...utils import fmt_rupiah, parse_amount

bp = Blueprint("paylater", __name__, url_prefix="/paylater")


# ---------- customer ----------
@bp.get("/applications")
@login_required
def my_applications():
    return reply(applications=[a.as_dict() for a in applications.list_applications(owner_id=current_user.id)])


@bp.post("/applications")
@roles_required("customer")
def submit():
    f = payload()
    amount = parse_amount(f.get("requested_limit") or f.get("amount"))
    with unit_of_work(f"[User: {current_user.id}] credit application"):
        app = applications.submit(current_user.id, amount, f.get("reason") or "")
    return reply("Credit limit application sent, waiting for admin approval.", status=201,
                 application=app.as_dict())


@bp.get("/notices")
@login_required
def notices():
    """Resolved applications not yet seen by the owner."""
    return reply(notices=[a.as_dict() for a in applications.pending_notices(current_user.id)])


@bp.post("/applications/<int:app_id>/acknowledge")
@login_required
def acknowledge(app_id: int):
    with unit_of_work(f"[Application: {app_id}] acknowledge"):
        app = applications.acknowledge(app_id, current_user.id)
    return reply(application=app.as_dict())


# ---------- admin ----------
@bp.get("/admin/applications")
@roles_required("admin")
def admin_list():
    status = (request.args.get("status") or "").strip() or None
    return reply(applications=[a.as_dict() for a in applications.list_applications(status=status)])


@bp.post("/admin/applications/<int:app_id>/resolve")
@roles_required("admin")
def resolve(app_id: int):
    decision = (payload().get("decision") or "").strip().lower()
    with unit_of_work(f"[Application: {app_id}] resolve"):
        app = applications.resolve(app_id, decision, current_user)
    verb = "approved" if app.status == APP_APPROVED else "rejected"
    return reply(f"Application for {fmt_rupiah(app.requested_limit)} {verb}!", application=app.as_dict())
