from flask import Blueprint
from flask_restful import Api
from cashflow.resources.recurring_transaction import (
    RecurringTransactionListResource,
    RecurringTransactionDetailResource,
    RecurringTransactionPauseResource,
    RecurringTransactionResumeResource,
    OccurrenceOverrideListResource,
    OccurrenceOverrideDetailResource,
    GeneratedTransactionListResource,
    DueRecurringTransactionResource,
    UpcomingRecurringTransactionResource,
    ExpiringRecurringTransactionResource,
    ProcessDueResource,
    ProjectionResource,
)


recurring_transaction_bp = Blueprint("recurring_transaction", __name__)
recurring_transaction_api = Api(recurring_transaction_bp)

recurring_transaction_api.add_resource(
    RecurringTransactionListResource, "", endpoint="recurring_transactions"
)
recurring_transaction_api.add_resource(
    DueRecurringTransactionResource, "/due", endpoint="due"
)
recurring_transaction_api.add_resource(
    UpcomingRecurringTransactionResource, "/upcoming", endpoint="upcoming"
)
recurring_transaction_api.add_resource(
    ExpiringRecurringTransactionResource, "/expiring", endpoint="expiring"
)
recurring_transaction_api.add_resource(ProcessDueResource, "/process", endpoint="process")
recurring_transaction_api.add_resource(
    ProjectionResource, "/projection", endpoint="projection"
)
recurring_transaction_api.add_resource(
    RecurringTransactionDetailResource, "/<id>", endpoint="recurring-transaction-detail"
)
recurring_transaction_api.add_resource(
    RecurringTransactionPauseResource, "/<id>/pause", endpoint="pause"
)
recurring_transaction_api.add_resource(
    RecurringTransactionResumeResource, "/<id>/resume", endpoint="resume"
)
recurring_transaction_api.add_resource(
    OccurrenceOverrideListResource, "/<id>/occurrences", endpoint="occurrences"
)
recurring_transaction_api.add_resource(
    OccurrenceOverrideDetailResource,
    "/<id>/occurrences/<occurrence_date>",
    endpoint="occurrence-detail",
)
recurring_transaction_api.add_resource(
    GeneratedTransactionListResource, "/<id>/transactions", endpoint="transactions"
)
