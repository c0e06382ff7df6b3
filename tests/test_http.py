from decimal import Decimal

from sipasera.extensions import db
from sipasera.ledger import credit, orders
from sipasera.models.credit import CreditApplication
from sipasera.models.order import Order

from .conftest import login


def _account(app, uid):
    with app.app_context():
        return credit.get_account(uid)


# ---------- auth ----------
def test_register_opens_nominal_account(app, seed):
    c = app.test_client()
    res = c.post("/auth/register", json={"name": "Warung Baru", "email": "new@mail.com", "password": "pw"})
    assert res.status_code == 201
    uid = res.get_json()["user"]["id"]
    acc = _account(app, uid)
    assert acc.credit_limit == Decimal("1")
    assert acc.used_credit == Decimal("0")
    assert acc.status == "active"

    login(c, "new@mail.com", "pw")
    me = c.get("/auth/me").get_json()
    assert me["user"]["role"] == "customer"


def test_register_duplicate_email(app, seed):
    res = app.test_client().post("/auth/register", json={"name": "x", "email": "WARUNG@mail.com", "password": "pw"})
    assert res.status_code == 400
    assert res.get_json()["error"] == "invalid_request"


def test_bad_login(app, seed):
    res = app.test_client().post("/auth/login", json={"email": "warung@mail.com", "password": "nope"})
    assert res.status_code == 401


def test_anonymous_is_refused(app, seed):
    c = app.test_client()
    assert c.get("/billing/").status_code == 401
    assert c.post("/cart/checkout", json={"payment_method": "cash"}).status_code == 401


# ---------- cart + checkout ----------
def test_cart_checkout_paylater(app, seed, customer):
    customer.post("/cart/add", json={"product_id": seed["big"], "quantity": 2})
    customer.post("/cart/add", json={"product_id": seed["big"], "quantity": 1})
    cart = customer.get("/cart/").get_json()
    assert cart["items"][0]["quantity"] == 3
    assert Decimal(cart["total"]) == Decimal("3000000")

    res = customer.post("/cart/checkout", json={"payment_method": "paylater"})
    assert res.status_code == 201, res.get_json()
    body = res.get_json()
    assert body["order"]["status"] == "pending"
    assert body["order"]["due_date"]
    assert _account(app, seed["warung"]).used_credit == Decimal("4500000")
    assert customer.get("/cart/").get_json()["items"] == []


def test_checkout_insufficient_credit_keeps_cart(app, seed, customer):
    customer.post("/cart/add", json={"product_id": seed["big"], "quantity": 4})
    res = customer.post("/cart/checkout", json={"payment_method": "paylater"})
    assert res.status_code == 409
    assert res.get_json()["error"] == "insufficient_credit"
    assert _account(app, seed["warung"]).used_credit == Decimal("1500000")
    assert len(customer.get("/cart/").get_json()["items"]) == 1
    with app.app_context():
        assert db.session.query(Order).count() == 0


def test_checkout_empty_cart(app, seed, customer):
    res = customer.post("/cart/checkout", json={"payment_method": "cash"})
    assert res.status_code == 400


def test_cart_update_zero_removes_line(app, seed, customer):
    customer.post("/cart/add", json={"product_id": seed["beras"]})
    customer.post("/cart/update", json={"product_id": seed["beras"], "quantity": 0})
    assert customer.get("/cart/").get_json()["items"] == []


def test_admin_cannot_shop(app, seed, admin):
    res = admin.post("/cart/add", json={"product_id": seed["beras"]})
    assert res.status_code == 403


# ---------- billing ----------
def _paylater_order(customer, seed, qty=1):
    customer.post("/cart/add", json={"product_id": seed["beras"], "quantity": qty})
    return customer.post("/cart/checkout", json={"payment_method": "paylater"}).get_json()["order"]["id"]


def test_pay_partial_then_full(app, seed, customer):
    oid = _paylater_order(customer, seed)
    res = customer.post(f"/billing/{oid}/pay", json={"amount": "25000", "method": "transfer"})
    assert res.status_code == 201, res.get_json()
    body = res.get_json()
    assert Decimal(body["remaining"]) == Decimal("50000")
    assert body["settled"] is False

    res = customer.post(f"/billing/{oid}/pay", json={"amount": "full"})
    body = res.get_json()
    assert body["settled"] is True
    assert body["order_status"] == "paid"
    assert _account(app, seed["warung"]).used_credit == Decimal("1500000")

    bills = customer.get("/billing/").get_json()["bills"]
    assert bills == []


def test_pay_overpayment(app, seed, customer):
    oid = _paylater_order(customer, seed)
    res = customer.post(f"/billing/{oid}/pay", json={"amount": 150000})
    assert res.status_code == 409
    assert res.get_json()["error"] == "overpayment_rejected"
    with app.app_context():
        assert orders.remaining(orders.get_order(oid)) == Decimal("75000")


def test_pay_garbage_amount(app, seed, customer):
    oid = _paylater_order(customer, seed)
    res = customer.post(f"/billing/{oid}/pay", json={"amount": "lots"})
    assert res.status_code == 400
    assert res.get_json()["error"] == "invalid_amount"


def test_pay_missing_order(app, seed, customer):
    assert customer.post("/billing/999/pay", json={"amount": 1}).status_code == 404


# ---------- credit applications ----------
def test_application_flow(app, seed, admin):
    c = login(app.test_client(), "baru@mail.com")
    res = c.post("/paylater/applications", json={"requested_limit": "2000000", "reason": "Tambah stok"})
    assert res.status_code == 201
    app_id = res.get_json()["application"]["id"]

    pending = admin.get("/paylater/admin/applications?status=pending").get_json()["applications"]
    assert [a["id"] for a in pending] == [app_id]

    res = admin.post(f"/paylater/admin/applications/{app_id}/resolve", json={"decision": "approved"})
    assert res.status_code == 200
    assert _account(app, seed["newbie"]).credit_limit == Decimal("2000001")

    res = admin.post(f"/paylater/admin/applications/{app_id}/resolve", json={"decision": "rejected"})
    assert res.status_code == 409
    assert res.get_json()["error"] == "invalid_state"

    notices = c.get("/paylater/notices").get_json()["notices"]
    assert [n["status"] for n in notices] == ["approved"]
    c.post(f"/paylater/applications/{app_id}/acknowledge")
    c.post(f"/paylater/applications/{app_id}/acknowledge")
    assert c.get("/paylater/notices").get_json()["notices"] == []
    with app.app_context():
        assert db.session.get(CreditApplication, app_id).notified is True


def test_customer_cannot_resolve(app, seed, customer):
    res = customer.post("/paylater/applications", json={"amount": "1000000"})
    app_id = res.get_json()["application"]["id"]
    res = customer.post(f"/paylater/admin/applications/{app_id}/resolve", json={"decision": "approved"})
    assert res.status_code == 403


def test_application_non_positive(app, seed, customer):
    res = customer.post("/paylater/applications", json={"requested_limit": "0"})
    assert res.status_code == 400


# ---------- orders ----------
def test_admin_rejects_paylater_order(app, seed, customer, admin):
    oid = _paylater_order(customer, seed, qty=2)
    assert _account(app, seed["warung"]).used_credit == Decimal("1650000")

    res = admin.post(f"/orders/{oid}/reject")
    assert res.status_code == 200
    assert res.get_json()["order"]["status"] == "rejected"
    assert _account(app, seed["warung"]).used_credit == Decimal("1500000")

    res = customer.post(f"/billing/{oid}/pay", json={"amount": 1000})
    assert res.status_code == 409

    view = customer.get(f"/orders/{oid}").get_json()
    assert Decimal(view["remaining"]) == Decimal("0")


def test_reject_reverses_income_and_revenue(app, seed, customer, admin):
    customer.post("/cart/add", json={"product_id": seed["beras"], "quantity": 2})
    oid = customer.post("/cart/checkout", json={"payment_method": "transfer"}).get_json()["order"]["id"]
    assert Decimal(admin.get("/finance/report").get_json()["total_income"]) == Decimal("150000")

    assert admin.post(f"/orders/{oid}/reject").status_code == 200
    rep = admin.get("/finance/report").get_json()
    assert Decimal(rep["total_income"]) == Decimal("0")
    assert Decimal(rep["net_profit"]) == Decimal("0")
    dash = admin.get("/finance/dashboard").get_json()
    assert Decimal(dash["total_revenue"]) == Decimal("0")
    assert dash["orders_by_status"] == {"rejected": 1}


def test_reject_refused_after_payment(app, seed, customer, admin):
    oid = _paylater_order(customer, seed, qty=2)
    assert customer.post(f"/billing/{oid}/pay", json={"amount": "50.000"}).status_code == 201

    res = admin.post(f"/orders/{oid}/reject")
    assert res.status_code == 409
    assert res.get_json()["error"] == "invalid_state"

    view = customer.get(f"/orders/{oid}").get_json()
    assert view["order"]["status"] == "pending"
    assert Decimal(view["paid"]) == Decimal("50000")
    assert Decimal(view["remaining"]) == Decimal("100000")
    assert _account(app, seed["warung"]).used_credit == Decimal("1600000")


def test_cash_order_view_owes_nothing(app, seed, customer):
    customer.post("/cart/add", json={"product_id": seed["beras"]})
    oid = customer.post("/cart/checkout", json={"payment_method": "cash"}).get_json()["order"]["id"]
    view = customer.get(f"/orders/{oid}").get_json()
    assert Decimal(view["remaining"]) == Decimal("0")


def test_admin_approves_order(app, seed, customer, admin):
    customer.post("/cart/add", json={"product_id": seed["beras"]})
    oid = customer.post("/cart/checkout", json={"payment_method": "cod"}).get_json()["order"]["id"]
    assert admin.post(f"/orders/{oid}/approve").get_json()["order"]["status"] == "approved"
    assert admin.post(f"/orders/{oid}/approve").status_code == 409


def test_orders_visibility(app, seed, customer, admin):
    _paylater_order(customer, seed)
    other = login(app.test_client(), "tanpa@mail.com")
    assert other.get("/orders/").get_json()["orders"] == []
    assert len(admin.get("/orders/").get_json()["orders"]) == 1
    assert customer.post("/orders/1/approve").status_code == 403


# ---------- finance ----------
def test_expense_and_report(app, seed, customer, admin):
    customer.post("/cart/add", json={"product_id": seed["beras"], "quantity": 2})
    customer.post("/cart/checkout", json={"payment_method": "cash"})

    res = admin.post("/finance/expenses", json={
        "expense_type": "fuel", "description": "Solar pickup", "amount": "50000", "expense_date": "2026-10-01",
    })
    assert res.status_code == 201

    rep = admin.get("/finance/report").get_json()
    assert Decimal(rep["total_income"]) == Decimal("150000")
    assert Decimal(rep["total_expense"]) == Decimal("50000")
    assert Decimal(rep["net_profit"]) == Decimal("100000")

    only_exp = admin.get("/finance/report?type=expense").get_json()
    assert [e["description"] for e in only_exp["entries"]] == ["FUEL - Solar pickup"]

    totals = admin.get("/finance/expenses").get_json()["totals"]
    assert Decimal(totals["fuel"]) == Decimal("50000")
    assert Decimal(totals["salary"]) == Decimal("0")

    dash = admin.get("/finance/dashboard").get_json()
    assert dash["total_products"] == 4
    assert dash["orders_by_status"] == {"completed": 1}
    assert Decimal(dash["total_used_credit"]) == Decimal("1500000")


def test_bad_expense_type(app, seed, admin):
    res = admin.post("/finance/expenses", json={"expense_type": "party", "amount": "1"})
    assert res.status_code == 400


def test_finance_is_admin_only(app, seed, customer):
    assert customer.get("/finance/report").status_code == 403
