# -*- coding: utf-8 -*-
"""
Credit limit applications: pending -> approved | rejected, exactly once.
"""
from __future__ import annotations

from sqlalchemy import select, update

from ..errors import InvalidAmount, InvalidRequest, InvalidState, NotFound
from ..extensions import db
from ..logging_config import get_logger
from ..models.credit import APP_APPROVED, APP_DECISIONS, APP_PENDING, CreditApplication
from ..utils import quantize, utcnow
from . import credit, require_admin

log = get_logger(__name__)


def get_application(application_id: int) -> CreditApplication:
    app = db.session.execute(
        select(CreditApplication)
        .where(CreditApplication.id == application_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if app is None:
        raise NotFound(f"Application #{application_id} not found.")
    return app


def submit(owner_id: int, requested_limit, reason: str = "") -> CreditApplication:
    amount = quantize(requested_limit)
    if amount <= 0:
        raise InvalidAmount("Requested limit must be positive.")
    app = CreditApplication(
        user_id=owner_id,
        requested_limit=amount,
        reason=(reason or "").strip(),
        status=APP_PENDING,
        notified=False,
    )
    db.session.add(app)
    db.session.flush()
    log.info(f"[Application: {app.id}] submitted by user {owner_id}, requested={amount}")
    return app


def resolve(application_id: int, decision: str, actor) -> CreditApplication:
    """Admin decision. Approval raises the owner's limit in the same transaction."""
    require_admin(actor)
    if decision not in APP_DECISIONS:
        raise InvalidRequest(f"Unknown decision: {decision}")

    app = get_application(application_id)
    now = utcnow()
    values = {
        "status": decision,
        "resolved_at": now,
        "resolved_by": actor.id,
        "approved_at": now if decision == APP_APPROVED else None,
        "notified": False,
    }
    # the status guard makes a second resolve a no-op at row level
    res = db.session.execute(
        update(CreditApplication)
        .where(CreditApplication.id == app.id, CreditApplication.status == APP_PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        raise InvalidState(f"Application #{app.id} is already {app.status}.")

    if decision == APP_APPROVED:
        credit.increase_limit(app.user_id, app.requested_limit)
    log.info(f"[Application: {app.id}] {decision} by admin {actor.id}")
    return get_application(application_id)


def acknowledge(application_id: int, owner_id: int) -> CreditApplication:
    app = get_application(application_id)
    if app.user_id != owner_id:
        raise NotFound(f"Application #{application_id} not found.")
    if not app.notified:
        app.notified = True
        db.session.flush()
        log.info(f"[Application: {app.id}] resolution acknowledged")
    return app


def pending_notices(owner_id: int) -> list[CreditApplication]:
    """Resolved applications the owner has not seen yet."""
    q = (
        select(CreditApplication)
        .where(
            CreditApplication.user_id == owner_id,
            CreditApplication.status != APP_PENDING,
            CreditApplication.notified.is_(False),
        )
        .order_by(CreditApplication.resolved_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(db.session.execute(q).scalars().all())


def list_applications(owner_id: int | None = None, status: str | None = None) -> list[CreditApplication]:
    q = select(CreditApplication).order_by(CreditApplication.created_at.desc(), CreditApplication.id.desc())
    if owner_id is not None:
        q = q.where(CreditApplication.user_id == owner_id)
    if status:
        q = q.where(CreditApplication.status == status)
    return list(db.session.execute(q.execution_options(populate_existing=True)).scalars().unique().all())
