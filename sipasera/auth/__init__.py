# -*- coding: utf-8 -*-

from flask import Blueprint, current_app
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func, select

from ..errors import InvalidRequest
from ..extensions import db, login_manager
from ..ledger import credit, unit_of_work
from ..models.user import ROLE_CUSTOMER, User
from ..security import payload, reply

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@login_manager.unauthorized_handler
def unauthorized():
    return reply("Please log in first.", "warning", 401, error="unauthorized")


def _find_by_email(email: str):
    return db.session.execute(
        select(User).where(func.lower(User.email) == email.lower())
    ).scalar_one_or_none()


@auth_bp.post("/login")
def login():
    f = payload()
    email = (f.get("email") or "").strip()
    password = (f.get("password") or "").strip()
    u = _find_by_email(email) if email else None
    if not u or not u.is_active or not u.check_password(password):
        return reply("Wrong email or password.", "danger", 401, error="bad_credentials")
    login_user(u, remember=True)
    return reply(f"Welcome, {u.name}!", user=u.as_dict())


@auth_bp.post("/register")
def register():
    f = payload()
    name = (f.get("name") or "").strip()
    email = (f.get("email") or "").strip()
    password = f.get("password") or ""
    if not name or not email or not password:
        raise InvalidRequest("Name, email and password are required.")
    if _find_by_email(email):
        raise InvalidRequest("Email is already registered.")

    with unit_of_work(f"[Register: {email}]"):
        u = User(
            email=email,
            name=name,
            phone=(f.get("phone") or "").strip(),
            address=(f.get("address") or "").strip(),
            role=ROLE_CUSTOMER,
        )
        u.set_password(password)
        db.session.add(u)
        db.session.flush()
        # nominal limit; real paylater needs an approved application
        credit.open_account(u.id, current_app.config["NOMINAL_CREDIT_LIMIT"])
    return reply("Registration successful, please log in.", status=201, user=u.as_dict())


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return reply("Logged out.")


@auth_bp.get("/me")
@login_required
def me():
    acc = credit.get_account(current_user.id)
    return reply(user=current_user.as_dict(), credit=acc.as_dict() if acc else None)
