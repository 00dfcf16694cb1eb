from marshmallow import Schema, fields, validates_schema, ValidationError, EXCLUDE
from marshmallow.validate import Range

from cashflow.extensions import ma
from cashflow.models.occurrence_override import OccurrenceOverride
from cashflow.utils.enums import OccurrenceAction
from cashflow.utils.constants import AMOUNT_MIN_VALUE as min_val, AMOUNT_MAX_VALUE as max_val


class OccurrenceOverrideSchema(ma.SQLAlchemyAutoSchema):
    """Read schema for skip/modify overrides"""

    class Meta:
        model = OccurrenceOverride
        include_fk = True
        fields = (
            "id",
            "recurring_transaction_id",
            "occurrence_date",
            "action",
            "modified_amount",
            "modified_description",
            "skip_reason",
            "created_at",
            "updated_at",
        )
        unknown = EXCLUDE

    recurring_transaction_id = fields.UUID()
    action = fields.Enum(OccurrenceAction, by_value=True)
    modified_amount = fields.Decimal(places=2, as_string=True, allow_none=True)


class OccurrenceOverrideRequestSchema(Schema):
    """Body of a skip or modify request for one occurrence"""

    class Meta:
        unknown = EXCLUDE

    occurrence_date = fields.Date(required=True)
    action = fields.Enum(OccurrenceAction, by_value=True, required=True)
    reason = fields.String(allow_none=True)
    amount = fields.Decimal(
        places=2, allow_none=True, validate=Range(min=min_val, max=max_val)
    )
    description = fields.String(allow_none=True)

    @validates_schema
    def validate_action_fields(self, data, **kwargs):
        if data["action"] == OccurrenceAction.SKIP:
            if data.get("amount") is not None or data.get("description") is not None:
                raise ValidationError(
                    "Skip overrides cannot carry an amount or description"
                )
        elif data.get("amount") is None and data.get("description") is None:
            raise ValidationError(
                "Modify overrides need an amount or a description"
            )


occurrence_override_schema = OccurrenceOverrideSchema()
occurrence_overrides_schema = OccurrenceOverrideSchema(many=True)
occurrence_override_request_schema = OccurrenceOverrideRequestSchema()
