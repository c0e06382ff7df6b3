# -*- coding: utf-8 -*-
"""
Full reset of the SQLite database plus demo data, with verbose logs.

Run from the project root:
  python scripts/recreate_db.py
"""

from __future__ import annotations
import sys, traceback
from decimal import Decimal
from pathlib import Path
from typing import Optional
from sqlalchemy import text

# --- project path ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print(f"[recreate] ROOT={ROOT}")
if not (ROOT / "sipasera" / "__init__.py").exists():
    raise SystemExit("[recreate] error: sipasera/__init__.py not found next to scripts/")

print("[recreate] importing the application…")
from sipasera import create_app
from sipasera.extensions import db
from sipasera.models.user import User, ROLE_ADMIN, ROLE_CUSTOMER
from sipasera.models.catalog import Product
from sipasera.ledger import credit


PRODUCTS = [
    ("Beras Premium 5kg", "Beras berkualitas tinggi", 75000, 100),
    ("Minyak Goreng 2L", "Minyak goreng murni", 35000, 150),
    ("Gula Pasir 1kg", "Gula pasir putih", 15000, 200),
    ("Telur Ayam 1kg", "Telur segar pilihan", 28000, 80),
]

# email, name, password, credit_limit, used_credit
CUSTOMERS = [
    ("kelompok1@mail.com", "Warung Kelompok 1", "user", 5000000, 1500000),
    ("warung@example.com", "Toko Berkah", "user", 3000000, 500000),
]


def _db_path_from_uri(uri: str) -> Optional[Path]:
    if uri.startswith("sqlite:///"):
        return Path(uri.replace("sqlite:///", "")).resolve()
    return None


def _cnt(table: str) -> int:
    try:
        return int(db.session.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar() or 0)
    except Exception:
        return -1


def main() -> int:
    print("[recreate] create_app()…")
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[recreate] SQLALCHEMY_DATABASE_URI = {uri}")

        db_path = _db_path_from_uri(uri)
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            if db_path.exists():
                print(f"[recreate] removing database file: {db_path}")
                db_path.unlink()
        else:
            print("[recreate] not sqlite, dropping tables instead")
            db.drop_all()

        print("[recreate] creating tables from models…")
        db.create_all()

        print("[recreate] adding products…")
        db.session.add_all([
            Product(name=n, description=d, price=Decimal(p), stock=s) for n, d, p, s in PRODUCTS
        ])

        print("[recreate] creating users…")
        admin = User(email="admin@sipasera.com", name="Admin Sipasera", role=ROLE_ADMIN)
        admin.set_password("admin")
        db.session.add(admin)
        for email, name, pwd, limit, used in CUSTOMERS:
            u = User(email=email, name=name, role=ROLE_CUSTOMER)
            u.set_password(pwd)
            db.session.add(u)
            db.session.flush()
            acc = credit.open_account(u.id, limit)
            acc.used_credit = Decimal(used)
        db.session.commit()
        print(f"[recreate] product rows={_cnt('product')}  user rows={_cnt('user')}  "
              f"credit_account rows={_cnt('credit_account')}")

        print("\n[recreate] Done.")
        print("Logins:")
        print("  admin@sipasera.com / admin")
        for email, _, pwd, _, _ in CUSTOMERS:
            print(f"  {email} / {pwd}")
        if db_path:
            print(f"\nDatabase file: {db_path}")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        print("\n[recreate] ERROR:")
        traceback.print_exc()
        sys.exit(1)
