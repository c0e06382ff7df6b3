# -*- coding: utf-8 -*-
"""
Error kinds raised by the credit and billing ledger.

Validation errors are raised before anything is written, so the caller may
fix the input and retry at once. ``BackendError`` means the transaction was
rolled back and nothing of the operation was committed.
"""
from __future__ import annotations


class LedgerError(Exception):
    code = "ledger_error"
    http_status = 400
    category = "warning"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    default_message = "Operation failed."

    def as_dict(self) -> dict:
        return {"ok": False, "error": self.code, "message": self.message}


class InvalidRequest(LedgerError):
    code = "invalid_request"
    default_message = "Invalid request."


class InvalidAmount(LedgerError):
    code = "invalid_amount"
    default_message = "Invalid amount."


class InsufficientCredit(LedgerError):
    code = "insufficient_credit"
    http_status = 409
    default_message = "Insufficient credit limit."


class NoCreditAccount(LedgerError):
    code = "no_credit_account"
    http_status = 409
    default_message = "You do not have a credit limit yet."


class CreditNotEligible(LedgerError):
    code = "credit_not_eligible"
    http_status = 409
    default_message = "Your credit limit is not active yet. Apply for a limit increase first."


class OverpaymentRejected(LedgerError):
    code = "overpayment_rejected"
    http_status = 409
    default_message = "Payment amount exceeds the outstanding bill."


class InsufficientStock(LedgerError):
    code = "insufficient_stock"
    http_status = 409
    default_message = "Not enough stock."


class InvalidState(LedgerError):
    code = "invalid_state"
    http_status = 409
    default_message = "Operation not allowed in the current state."


class NotFound(LedgerError):
    code = "not_found"
    http_status = 404
    default_message = "Not found."


class Forbidden(LedgerError):
    code = "forbidden"
    http_status = 403
    default_message = "Insufficient permissions."


class BackendError(LedgerError):
    code = "backend_error"
    http_status = 503
    category = "danger"
    default_message = "Storage failure, the operation was not completed."
