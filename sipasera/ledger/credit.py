# -*- coding: utf-8 -*-
"""
Credit ledger: per-user credit limit and used credit.

Usage and limit changes are single conditional UPDATE statements, so two
sessions drawing on the same account cannot both pass the limit check.
Reads always go to the database (``populate_existing``), never to objects
cached in the session.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import case, select, update

from ..errors import InsufficientCredit, InvalidAmount, NoCreditAccount
from ..extensions import db
from ..logging_config import get_logger
from ..models.credit import ACCOUNT_ACTIVE, CreditAccount
from ..utils import D, quantize, utcnow

log = get_logger(__name__)


def _positive(amount) -> Decimal:
    value = quantize(amount)
    if value <= 0:
        raise InvalidAmount()
    return value


def get_account(user_id: int) -> CreditAccount | None:
    return db.session.execute(
        select(CreditAccount)
        .where(CreditAccount.user_id == user_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def available_credit(user_id: int) -> Decimal:
    acc = get_account(user_id)
    return acc.available if acc else Decimal("0")


def open_account(user_id: int, credit_limit) -> CreditAccount:
    """Account created at registration with the nominal limit."""
    acc = CreditAccount(
        user_id=user_id,
        credit_limit=quantize(credit_limit),
        used_credit=Decimal("0"),
        status=ACCOUNT_ACTIVE,
    )
    db.session.add(acc)
    db.session.flush()
    log.info(f"[User: {user_id}] credit account opened, limit={acc.credit_limit}")
    return acc


def increase_used(user_id: int, amount) -> CreditAccount:
    amount = _positive(amount)
    res = db.session.execute(
        update(CreditAccount)
        .where(
            CreditAccount.user_id == user_id,
            CreditAccount.used_credit + amount <= CreditAccount.credit_limit,
        )
        .values(used_credit=CreditAccount.used_credit + amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        acc = get_account(user_id)
        if acc is None:
            raise NoCreditAccount()
        log.warning(f"[User: {user_id}] credit draw of {amount} refused, available={acc.available}")
        raise InsufficientCredit()
    acc = get_account(user_id)
    log.info(f"[User: {user_id}] used credit +{amount} -> {acc.used_credit}/{acc.credit_limit}")
    return acc


def decrease_used(user_id: int, amount) -> CreditAccount:
    """Frees credit; floors at zero instead of failing on manual slack."""
    amount = _positive(amount)
    res = db.session.execute(
        update(CreditAccount)
        .where(CreditAccount.user_id == user_id)
        .values(
            used_credit=case(
                (CreditAccount.used_credit > amount, CreditAccount.used_credit - amount),
                else_=0,
            ),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        raise NoCreditAccount()
    acc = get_account(user_id)
    log.info(f"[User: {user_id}] used credit -{amount} -> {acc.used_credit}/{acc.credit_limit}")
    return acc


def increase_limit(user_id: int, amount) -> CreditAccount:
    amount = _positive(amount)
    res = db.session.execute(
        update(CreditAccount)
        .where(CreditAccount.user_id == user_id)
        .values(credit_limit=CreditAccount.credit_limit + amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        open_account(user_id, amount)
    acc = get_account(user_id)
    log.info(f"[User: {user_id}] credit limit +{amount} -> {acc.credit_limit}")
    return acc


def total_used_credit() -> Decimal:
    return D(db.session.execute(
        select(db.func.coalesce(db.func.sum(CreditAccount.used_credit), 0))
    ).scalar())
