from marshmallow import fields, EXCLUDE
from cashflow.extensions import ma
from cashflow.models.transaction import Transaction
from cashflow.utils.enums import TransactionType


class TransactionSchema(ma.SQLAlchemyAutoSchema):
    """Read-only schema for transactions generated from a recurring schedule"""

    class Meta:
        model = Transaction
        include_fk = True
        fields = (
            "id",
            "type",
            "amount",
            "currency",
            "amount_usd",
            "category_id",
            "description",
            "transaction_at",
            "recurring_transaction_id",
            "created_at",
        )
        unknown = EXCLUDE

    type = fields.Enum(TransactionType, by_value=True)
    amount = fields.Decimal(places=2, as_string=True)
    amount_usd = fields.Decimal(places=2, as_string=True)
    category_id = fields.UUID()
    recurring_transaction_id = fields.UUID(allow_none=True)


transactions_schema = TransactionSchema(many=True)
