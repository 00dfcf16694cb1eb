from datetime import datetime
from marshmallow import Schema, fields, validates_schema, ValidationError, EXCLUDE
from marshmallow.validate import Range, Length

from cashflow.extensions import ma
from cashflow.models.recurring_transaction import RecurringTransaction
from cashflow.schemas.category import CategorySchema
from cashflow.schemas.fields import NaiveDateTime
from cashflow.services.due_date import describe_frequency
from cashflow.utils.enums import TransactionType, TransactionFrequency
from cashflow.utils.constants import (
    AMOUNT_MIN_VALUE as min_val,
    AMOUNT_MAX_VALUE as max_val,
    FREQUENCY_VALUE_MAX,
)


class RecurringTransactionSchema(ma.SQLAlchemyAutoSchema):
    """Schema for RecurringTransaction model - used for creation and reading"""

    class Meta:
        model = RecurringTransaction
        load_instance = True
        include_fk = True
        fields = (
            "id",
            "category_id",
            "category",
            "amount",
            "currency",
            "description",
            "type",
            "frequency",
            "frequency_value",
            "frequency_display",
            "start_date",
            "end_date",
            "next_due_date",
            "last_processed",
            "is_active",
            "state",
            "created_at",
            "updated_at",
        )
        dump_only = (
            "id",
            "category",
            "frequency_display",
            "next_due_date",
            "last_processed",
            "is_active",
            "state",
            "created_at",
            "updated_at",
        )
        unknown = EXCLUDE

    category = fields.Nested(CategorySchema, only=("id", "name"), dump_only=True)
    category_id = fields.UUID(required=True)

    type = fields.Enum(TransactionType, by_value=True, required=True)
    frequency = fields.Enum(TransactionFrequency, by_value=True, required=True)
    frequency_value = fields.Integer(
        load_default=1, validate=Range(min=1, max=FREQUENCY_VALUE_MAX)
    )

    amount = fields.Decimal(
        required=True,
        places=2,
        validate=Range(min=min_val, max=max_val),
        as_string=True,
    )
    currency = fields.String(load_default="USD", validate=Length(equal=3))

    start_date = NaiveDateTime(required=True)
    end_date = NaiveDateTime(allow_none=True)

    frequency_display = fields.Method("get_frequency_display", dump_only=True)
    state = fields.Method("get_state", dump_only=True)

    def get_frequency_display(self, obj):
        return describe_frequency(obj.frequency, obj.frequency_value)

    def get_state(self, obj):
        return obj.schedule_state(datetime.now()).value


class RecurringTransactionUpdateSchema(Schema):
    """Schema for partial updates - returns a dict of changed fields"""

    class Meta:
        unknown = EXCLUDE

    category_id = fields.UUID()
    type = fields.Enum(TransactionType, by_value=True)
    frequency = fields.Enum(TransactionFrequency, by_value=True)
    frequency_value = fields.Integer(validate=Range(min=1, max=FREQUENCY_VALUE_MAX))
    amount = fields.Decimal(places=2, validate=Range(min=min_val, max=max_val))
    currency = fields.String(validate=Length(equal=3))
    description = fields.String(allow_none=True)
    start_date = NaiveDateTime()
    end_date = NaiveDateTime(allow_none=True)

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("No updatable fields provided")


class ProcessDueSchema(Schema):
    """Body of a catch-up processing request"""

    class Meta:
        unknown = EXCLUDE

    as_of = NaiveDateTime(load_default=None)


class UpcomingQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    days = fields.Integer(load_default=None, validate=Range(min=0, max=3660))


class DueQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    as_of = NaiveDateTime(load_default=None)


class ProjectionQuerySchema(Schema):
    """Query string of a projection request"""

    class Meta:
        unknown = EXCLUDE

    start = NaiveDateTime(required=True)
    end = NaiveDateTime(required=True)

    @validates_schema
    def validate_window(self, data, **kwargs):
        if data["end"] < data["start"]:
            raise ValidationError("End must not be before start", "end")


# Initialize schemas
recurring_transaction_schema = RecurringTransactionSchema()
recurring_transactions_schema = RecurringTransactionSchema(many=True)
recurring_transaction_update_schema = RecurringTransactionUpdateSchema()
process_due_schema = ProcessDueSchema()
upcoming_query_schema = UpcomingQuerySchema()
due_query_schema = DueQuerySchema()
projection_query_schema = ProjectionQuerySchema()
