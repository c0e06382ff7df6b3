# -*- coding: utf-8 -*-
"""
Credit and billing ledger.

Every public operation that writes runs inside :func:`unit_of_work`: a single
database transaction which is either committed as a whole or rolled back.
Nothing of a failed checkout, repayment or approval stays behind.
"""
from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ..errors import BackendError, Forbidden, LedgerError
from ..extensions import db
from ..logging_config import get_logger

log = get_logger(__name__)


@contextmanager
def unit_of_work(label: str):
    """Commit on success; on any error roll back and re-raise.

    ``SQLAlchemyError`` surfaces as ``BackendError`` so callers only ever
    see ledger error kinds.
    """
    try:
        yield db.session
        db.session.commit()
    except LedgerError as e:
        db.session.rollback()
        log.warning(f"{label} rolled back: {e.code} - {e.message}")
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        log.error(f"{label} rolled back: storage failure", exc_info=True)
        raise BackendError() from e
    except Exception:
        db.session.rollback()
        log.error(f"{label} rolled back: unexpected error", exc_info=True)
        raise


def require_admin(actor) -> None:
    if not actor or getattr(actor, "role", "") != "admin":
        raise Forbidden()
