from decimal import Decimal
from datetime import datetime
from cashflow.extensions import db
from cashflow.models.base import BaseModel
from cashflow.utils.enums import TransactionType


class Transaction(BaseModel):
    """Model for financial transactions, including ones generated from a schedule"""

    __tablename__ = "transactions"

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    amount_usd = db.Column(db.Numeric(12, 2), nullable=False)
    transaction_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.Enum(TransactionType, name="transaction_type"), nullable=False)

    # Foreign keys
    category_id = db.Column(
        db.Uuid(as_uuid=True),
        db.ForeignKey("categories.id"),
        nullable=False,
    )
    recurring_transaction_id = db.Column(
        db.Uuid(as_uuid=True),
        db.ForeignKey("recurring_transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    category = db.relationship(
        "Category",
        backref=db.backref("transactions", lazy="dynamic"),
    )

    def __repr__(self):
        return f"<Transaction {self.type.value} {self.amount} {self.currency} | {self.recurring_transaction_id}>"

    @property
    def get_amount(self):
        """Return amount as a Python Decimal object"""
        return Decimal(str(self.amount))
