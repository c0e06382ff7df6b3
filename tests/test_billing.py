from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from sipasera.errors import Forbidden, InvalidAmount, InvalidRequest, InvalidState, OverpaymentRejected
from sipasera.extensions import db
from sipasera.ledger import billing, checkout, credit, orders
from sipasera.models.order import Payment
from sipasera.models.report import FinancialReportEntry
from sipasera.models.user import User


def _user(ctx, key="warung"):
    return db.session.get(User, ctx[key])


def _paylater(ctx, qty=1):
    # 75 000 per bag of rice
    return checkout.checkout(_user(ctx), [(ctx["beras"], qty)], "paylater")


def test_partial_then_full_repayment(ctx):
    order = checkout.checkout(_user(ctx), [(ctx["minyak"], 2), (ctx["telur"], 1)], "paylater")
    assert order.total_amount == Decimal("98000")
    used = credit.get_account(ctx["warung"]).used_credit

    billing.pay(_user(ctx), order.id, Decimal("40000"))
    o = orders.get_order(order.id)
    assert orders.remaining(o) == Decimal("58000")
    assert o.status == "pending"
    assert credit.get_account(ctx["warung"]).used_credit == used - Decimal("40000")

    billing.pay(_user(ctx), order.id, Decimal("58000"))
    o = orders.get_order(order.id)
    assert orders.remaining(o) == Decimal("0")
    assert o.status == "paid"
    assert credit.get_account(ctx["warung"]).used_credit == Decimal("1500000")


def test_pay_in_full_shortcut(ctx):
    order = _paylater(ctx, 2)
    payment = billing.pay(_user(ctx), order.id)
    assert payment.amount == Decimal("150000")
    assert orders.get_order(order.id).status == "paid"


def test_overpayment_leaves_everything_unchanged(ctx):
    order = _paylater(ctx)
    with pytest.raises(OverpaymentRejected):
        billing.pay(_user(ctx), order.id, Decimal("150000"))
    assert db.session.query(Payment).count() == 0
    assert orders.remaining(orders.get_order(order.id)) == Decimal("75000")
    assert credit.get_account(ctx["warung"]).used_credit == Decimal("1575000")


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_amount(ctx, amount):
    order = _paylater(ctx)
    with pytest.raises(InvalidAmount):
        billing.pay(_user(ctx), order.id, Decimal(amount))


def test_settled_order_cannot_be_paid_again(ctx):
    order = _paylater(ctx)
    billing.pay(_user(ctx), order.id)
    with pytest.raises(InvalidState):
        billing.pay(_user(ctx), order.id, Decimal("1"))


def test_only_paylater_orders(ctx):
    order = checkout.checkout(_user(ctx), [(ctx["beras"], 1)], "transfer")
    with pytest.raises(InvalidState):
        billing.pay(_user(ctx), order.id, Decimal("1000"))


def test_foreign_order(ctx):
    order = _paylater(ctx)
    with pytest.raises(Forbidden):
        billing.pay(_user(ctx, "newbie"), order.id, Decimal("1000"))


def test_unknown_repayment_method(ctx):
    order = _paylater(ctx)
    with pytest.raises(InvalidRequest):
        billing.pay(_user(ctx), order.id, Decimal("1000"), method="paylater")


def test_repayment_writes_income_entry(ctx):
    order = _paylater(ctx)
    billing.pay(_user(ctx), order.id, Decimal("25000"), method="cash", note="titip kasir")
    entries = db.session.query(FinancialReportEntry).order_by(FinancialReportEntry.id).all()
    assert [e.amount for e in entries] == [Decimal("75000"), Decimal("25000")]
    assert "Payment for order" in entries[-1].description
    p = db.session.query(Payment).one()
    assert (p.method, p.note) == ("cash", "titip kasir")


def test_remaining_is_never_negative(ctx):
    order = _paylater(ctx)
    billing.pay(_user(ctx), order.id, Decimal("75000"))
    o = orders.get_order(order.id)
    assert orders.remaining(o) == Decimal("0")
    assert orders.total_paid(o.id) == o.total_amount


def test_days_remaining():
    now = datetime(2026, 3, 1, 12, 0)
    assert billing.days_remaining(now + timedelta(days=30), now) == 30
    assert billing.days_remaining(now + timedelta(hours=1), now) == 1
    assert billing.days_remaining(now - timedelta(days=2), now) == -2
    assert billing.days_remaining(None, now) is None


def test_statement_lists_outstanding_bills(ctx):
    first = _paylater(ctx)
    second = _paylater(ctx, 2)
    billing.pay(_user(ctx), first.id)
    billing.pay(_user(ctx), second.id, Decimal("50000"))

    later = datetime.utcnow() + timedelta(days=40)
    s = billing.statement(ctx["warung"], now=later)
    assert s["credit"]["credit_limit"] == Decimal("5000000")
    assert [b["id"] for b in s["bills"]] == [second.id]
    bill = s["bills"][0]
    assert bill["paid"] == Decimal("50000")
    assert bill["remaining"] == Decimal("100000")
    assert bill["overdue"] is True
    assert len(bill["payments"]) == 1
