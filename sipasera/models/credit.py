# -*- coding: utf-8 -*-
from __future__ import annotations

from decimal import Decimal
from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..utils import D, utcnow


ACCOUNT_ACTIVE = "active"

APP_PENDING = "pending"
APP_APPROVED = "approved"
APP_REJECTED = "rejected"
APP_DECISIONS = (APP_APPROVED, APP_REJECTED)


class CreditAccount(db.Model):
    """Paylater credit line of one user. 0 <= used_credit <= credit_limit."""
    __tablename__ = "credit_account"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True, index=True)
    credit_limit = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    used_credit = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    status = db.Column(db.String(16), default=ACCOUNT_ACTIVE)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.CheckConstraint("used_credit >= 0", name="ck_credit_used_nonneg"),
        db.CheckConstraint("used_credit <= credit_limit", name="ck_credit_used_le_limit"),
    )

    @hybrid_property
    def available(self) -> Decimal:
        return D(self.credit_limit) - D(self.used_credit)

    @available.expression
    def available(cls):
        return cls.credit_limit - cls.used_credit

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "credit_limit": D(self.credit_limit),
            "used_credit": D(self.used_credit),
            "available": self.available,
            "status": self.status,
        }


class CreditApplication(db.Model):
    __tablename__ = "credit_application"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    requested_limit = db.Column(db.Numeric(14, 2), nullable=False)
    reason = db.Column(db.Text, default="")
    status = db.Column(db.String(16), default=APP_PENDING, index=True)  # pending|approved|rejected
    created_at = db.Column(db.DateTime, default=utcnow)
    approved_at = db.Column(db.DateTime, nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    # owner has seen the resolution banner
    notified = db.Column(db.Boolean, default=False, nullable=False)

    user = db.relationship("User", foreign_keys=[user_id], lazy="joined")

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else "",
            "requested_limit": D(self.requested_limit),
            "reason": self.reason,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "notified": bool(self.notified),
        }
