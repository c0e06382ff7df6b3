# -*- coding: utf-8 -*-
from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import InvalidAmount


D = lambda v: Decimal(str(v)) if v is not None else Decimal("0")

CENT = Decimal("0.01")

# one dot followed by exactly three digits is a thousands separator ("50.000")
_THOUSANDS = re.compile(r"^-?\d{1,3}\.\d{3}$")


def quantize(v) -> Decimal:
    return D(v).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(raw) -> Decimal:
    """Form/JSON value -> Decimal. Accepts "1.500.000", "1500000", 1500000.5."""
    if isinstance(raw, bool) or raw is None:
        raise InvalidAmount()
    if isinstance(raw, (int, float, Decimal)):
        s = str(raw)
    else:
        s = str(raw).strip().replace(" ", "")
        # rupiah style thousands separators: "1.500.000", "50.000", "1.500,50"
        if s.count(".") > 1 or (s.count(".") == 1 and "," in s) or _THOUSANDS.match(s):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", ".")
    try:
        value = Decimal(s)
    except InvalidOperation:
        raise InvalidAmount()
    if not value.is_finite():
        raise InvalidAmount()
    return quantize(value)


def fmt_rupiah(v) -> str:
    try:
        x = D(v)
        if x == x.to_integral_value():
            return "Rp " + f"{int(x):,}".replace(",", ".")
        return "Rp " + f"{x:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    except Exception:
        return str(v)


def utcnow() -> datetime:
    # naive UTC, the same shape as the stored columns
    return datetime.now(timezone.utc).replace(tzinfo=None)
