from decimal import Decimal
from cashflow.extensions import db
from cashflow.models.base import BaseModel
from cashflow.utils.enums import (
    TransactionType,
    TransactionFrequency,
    ScheduleState,
)


class RecurringTransaction(BaseModel):
    """Model for recurring transactions"""

    __tablename__ = "recurring_transactions"

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.Enum(TransactionType, name="transaction_type"), nullable=False)

    frequency = db.Column(
        db.Enum(TransactionFrequency, name="transaction_frequency"), nullable=False
    )
    frequency_value = db.Column(db.Integer, nullable=False, default=1)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=True, default=None)
    next_due_date = db.Column(db.DateTime, nullable=False, index=True)
    last_processed = db.Column(db.DateTime, nullable=True, default=None)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Foreign keys
    category_id = db.Column(
        db.Uuid(as_uuid=True),
        db.ForeignKey("categories.id"),
        nullable=False,
        index=True,
    )

    # Relationships
    category = db.relationship(
        "Category",
        backref=db.backref("recurring_transactions", lazy="dynamic"),
    )
    generated_transactions = db.relationship(
        "Transaction",
        backref="recurring_transaction",
        lazy="dynamic",
        passive_deletes=True,
    )
    overrides = db.relationship(
        "OccurrenceOverride",
        backref="recurring_transaction",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<RecurringTransaction {self.type.value} {self.amount} {self.currency} {self.frequency.value}x{self.frequency_value}>"

    @property
    def get_amount(self):
        """Return amount as a Python Decimal object"""
        return Decimal(str(self.amount))

    @property
    def anchor_day(self):
        """Day of month the schedule is pinned to for month/year arithmetic"""
        return self.start_date.day if self.start_date else None

    def is_due(self, as_of):
        return bool(self.is_active) and self.next_due_date <= as_of

    def has_ended(self):
        """True once the schedule has no occurrence left on or before end_date"""
        return self.end_date is not None and self.next_due_date > self.end_date

    def schedule_state(self, as_of):
        if self.has_ended():
            return ScheduleState.ENDED
        if not self.is_active:
            return ScheduleState.PAUSED
        if self.next_due_date <= as_of:
            return ScheduleState.ACTIVE_DUE
        return ScheduleState.ACTIVE_PENDING
