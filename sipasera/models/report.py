from ..extensions import db
from ..utils import D, utcnow

INCOME = "income"
EXPENSE = "expense"

# gaji|bbm|pembelian_stok|lainnya in the shop's own words
EXPENSE_TYPES = ("salary", "fuel", "stock_purchase", "other")


class FinancialReportEntry(db.Model):
    """Append-only audit trail of money in and out."""
    __tablename__ = "financial_report"

    id = db.Column(db.Integer, primary_key=True)
    report_type = db.Column(db.String(16), nullable=False, index=True)  # income|expense
    description = db.Column(db.String(255), default="")
    amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "report_type": self.report_type,
            "description": self.description,
            "amount": D(self.amount),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class OperationalExpense(db.Model):
    __tablename__ = "operational_expense"

    id = db.Column(db.Integer, primary_key=True)
    expense_type = db.Column(db.String(32), nullable=False, default="other")
    description = db.Column(db.String(255), default="")
    amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    expense_date = db.Column(db.Date, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_type": self.expense_type,
            "description": self.description,
            "amount": D(self.amount),
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
        }
