from cashflow.extensions import db
from cashflow.models.base import BaseModel
from cashflow.utils.enums import OccurrenceAction


class OccurrenceOverride(BaseModel):
    """Skip or modify exception for one occurrence date of a recurring transaction"""

    __tablename__ = "occurrence_overrides"

    recurring_transaction_id = db.Column(
        db.Uuid(as_uuid=True),
        db.ForeignKey("recurring_transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    occurrence_date = db.Column(db.Date, nullable=False)
    action = db.Column(
        db.Enum(OccurrenceAction, name="occurrence_action"), nullable=False
    )
    modified_amount = db.Column(db.Numeric(12, 2), nullable=True)
    modified_description = db.Column(db.Text, nullable=True)
    skip_reason = db.Column(db.Text, nullable=True)

    # One override per occurrence date
    __table_args__ = (
        db.UniqueConstraint(
            "recurring_transaction_id",
            "occurrence_date",
            name="unique_override_per_occurrence",
        ),
    )

    def __repr__(self):
        return f"<OccurrenceOverride {self.recurring_transaction_id} {self.occurrence_date} {self.action.value}>"
