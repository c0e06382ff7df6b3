from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool

from sipasera import create_app
from sipasera.extensions import db
from sipasera.ledger import credit
from sipasera.models.catalog import Product
from sipasera.models.user import User


def _user(email, name, role="customer", password="secret"):
    u = User(email=email, name=name, role=role)
    u.set_password(password)
    db.session.add(u)
    db.session.flush()
    return u


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        },
        "LOG_FILE": None,
        "PAYLATER_TERM_DAYS": 30,
        "NOMINAL_CREDIT_LIMIT": Decimal("1"),
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def seed(app):
    """Admin, three customers and a small grocery catalog. Returns ids."""
    with app.app_context():
        admin = _user("admin@sipasera.com", "Admin Sipasera", role="admin", password="admin")
        warung = _user("warung@mail.com", "Warung Kelompok 1")
        newbie = _user("baru@mail.com", "Toko Baru")
        nocredit = _user("tanpa@mail.com", "Toko Tanpa Kredit")

        acc = credit.open_account(warung.id, Decimal("5000000"))
        acc.used_credit = Decimal("1500000")
        credit.open_account(newbie.id, Decimal("1"))

        beras = Product(name="Beras Premium 5kg", price=Decimal("75000"), stock=100)
        minyak = Product(name="Minyak Goreng 2L", price=Decimal("35000"), stock=150)
        telur = Product(name="Telur Ayam 1kg", price=Decimal("28000"), stock=2)
        big = Product(name="Paket Grosir", price=Decimal("1000000"), stock=50)
        db.session.add_all([beras, minyak, telur, big])
        db.session.commit()
        ids = {
            "admin": admin.id,
            "warung": warung.id,
            "newbie": newbie.id,
            "nocredit": nocredit.id,
            "beras": beras.id,
            "minyak": minyak.id,
            "telur": telur.id,
            "big": big.id,
        }
    return ids


@pytest.fixture
def ctx(app, seed):
    """App context for tests that call the ledger directly."""
    with app.app_context():
        yield seed
        db.session.rollback()


def login(client, email, password="secret"):
    res = client.post("/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.get_json()
    return client


@pytest.fixture
def customer(app, seed):
    return login(app.test_client(), "warung@mail.com")


@pytest.fixture
def admin(app, seed):
    return login(app.test_client(), "admin@sipasera.com", "admin")
