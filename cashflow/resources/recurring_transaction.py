from datetime import datetime
from flask import request, current_app
from flask_restful import Resource
from marshmallow import ValidationError

from cashflow.schemas.recurring_transaction import (
    recurring_transaction_schema,
    recurring_transactions_schema,
    recurring_transaction_update_schema,
    process_due_schema,
    upcoming_query_schema,
    due_query_schema,
    projection_query_schema,
)
from cashflow.schemas.occurrence_override import (
    occurrence_override_schema,
    occurrence_overrides_schema,
    occurrence_override_request_schema,
)
from cashflow.schemas.transaction import transactions_schema
from cashflow.services import occurrence_override
from cashflow.services.currency import get_currency_service
from cashflow.services.projection import calculate_projected_amount, project_occurrences
from cashflow.services.recurring_transaction import (
    get_recurring_transactions,
    get_recurring_transaction,
    create_recurring_transaction,
    update_recurring_transaction,
    delete_recurring_transaction,
    pause_recurring_transaction,
    resume_recurring_transaction,
    skip_occurrence,
    modify_occurrence,
    get_generated_transactions,
    get_due_recurring_transactions,
    get_upcoming_recurring_transactions,
    get_expiring_recurring_transactions,
    process_due_transactions,
)
from cashflow.utils.constants import DATE_FORMAT
from cashflow.utils.enums import OccurrenceAction
from cashflow.utils.pagination import paginate
from cashflow.utils.responses import validation_error_response
from cashflow.utils.logger import logger


class RecurringTransactionListResource(Resource):
    """Resource for listing and creating recurring transactions"""

    def get(self):
        """Get paginated list of recurring transactions with filtering"""
        try:
            query_params = request.args.to_dict()
            query = get_recurring_transactions(query_params)

            return paginate(
                query,
                recurring_transactions_schema,
                endpoint="recurring_transaction.recurring_transactions",
            )

        except ValidationError as err:
            return validation_error_response(err)

    def post(self):
        """Create a new recurring transaction"""
        try:
            data = request.get_json() or {}
            logger.info(f"Creating recurring transaction: {data}")

            recurring_transaction = recurring_transaction_schema.load(data)
            result = create_recurring_transaction(
                recurring_transaction, get_currency_service()
            )

            logger.info(f"Recurring transaction created successfully with ID {result.id}")
            return recurring_transaction_schema.dump(result), 201

        except ValidationError as err:
            return validation_error_response(err)


class RecurringTransactionDetailResource(Resource):
    """Resource for retrieving, updating and deleting a recurring transaction"""

    def get(self, id):
        recurring_transaction = get_recurring_transaction(id)
        return recurring_transaction_schema.dump(recurring_transaction), 200

    def patch(self, id):
        """Update a specific recurring transaction"""
        try:
            recurring_transaction = get_recurring_transaction(id)
            data = request.get_json() or {}

            logger.info(f"Updating recurring transaction {id}: {data}")

            update_data = recurring_transaction_update_schema.load(data, partial=True)
            result = update_recurring_transaction(
                recurring_transaction, update_data, get_currency_service()
            )

            return recurring_transaction_schema.dump(result), 200

        except ValidationError as err:
            return validation_error_response(err)

    def delete(self, id):
        """Delete a recurring transaction, or deactivate it when it has history"""
        deleted = delete_recurring_transaction(id)

        if deleted:
            return "", 204

        recurring_transaction = get_recurring_transaction(id)
        return {
            "message": "Recurring transaction has generated transactions and was deactivated",
            "data": recurring_transaction_schema.dump(recurring_transaction),
        }, 200


class RecurringTransactionPauseResource(Resource):
    def post(self, id):
        recurring_transaction = pause_recurring_transaction(id)
        return recurring_transaction_schema.dump(recurring_transaction), 200


class RecurringTransactionResumeResource(Resource):
    def post(self, id):
        recurring_transaction = resume_recurring_transaction(id)
        return recurring_transaction_schema.dump(recurring_transaction), 200


class OccurrenceOverrideListResource(Resource):
    """Resource for listing and recording skip/modify overrides"""

    def get(self, id):
        overrides = occurrence_override.list_overrides(id)
        return {"data": occurrence_overrides_schema.dump(overrides)}, 200

    def post(self, id):
        try:
            data = occurrence_override_request_schema.load(request.get_json() or {})

            if data["action"] == OccurrenceAction.SKIP:
                override = skip_occurrence(
                    id, data["occurrence_date"], data.get("reason")
                )
            else:
                override = modify_occurrence(
                    id,
                    data["occurrence_date"],
                    data.get("amount"),
                    data.get("description"),
                )

            return occurrence_override_schema.dump(override), 201

        except ValidationError as err:
            return validation_error_response(err)


class OccurrenceOverrideDetailResource(Resource):
    def delete(self, id, occurrence_date):
        try:
            parsed = datetime.strptime(occurrence_date, DATE_FORMAT).date()
        except ValueError:
            return {"error": f"Invalid occurrence date: {occurrence_date}"}, 400

        get_recurring_transaction(id)
        if not occurrence_override.delete_override(id, parsed):
            return {"error": f"No override on {occurrence_date}"}, 404
        return "", 204


class GeneratedTransactionListResource(Resource):
    def get(self, id):
        transactions = get_generated_transactions(id)
        return {"data": transactions_schema.dump(transactions)}, 200


class DueRecurringTransactionResource(Resource):
    def get(self):
        try:
            params = due_query_schema.load(request.args.to_dict())
            as_of = params["as_of"] or datetime.now()
            items = get_due_recurring_transactions(as_of)
            return {
                "as_of": as_of.isoformat(),
                "data": recurring_transactions_schema.dump(items),
            }, 200

        except ValidationError as err:
            return validation_error_response(err)


class UpcomingRecurringTransactionResource(Resource):
    def get(self):
        try:
            params = upcoming_query_schema.load(request.args.to_dict())
            days = params["days"]
            if days is None:
                days = current_app.config["UPCOMING_DEFAULT_DAYS"]

            items = get_upcoming_recurring_transactions(days)
            return {"days": days, "data": recurring_transactions_schema.dump(items)}, 200

        except ValidationError as err:
            return validation_error_response(err)


class ExpiringRecurringTransactionResource(Resource):
    def get(self):
        try:
            params = upcoming_query_schema.load(request.args.to_dict())
            days = params["days"]
            if days is None:
                days = current_app.config["UPCOMING_DEFAULT_DAYS"]

            items = get_expiring_recurring_transactions(days)
            return {"days": days, "data": recurring_transactions_schema.dump(items)}, 200

        except ValidationError as err:
            return validation_error_response(err)


class ProcessDueResource(Resource):
    """Run catch-up processing on demand"""

    def post(self):
        try:
            params = process_due_schema.load(request.get_json(silent=True) or {})
            as_of = params["as_of"] or datetime.now()

            processed_count, errors = process_due_transactions(
                as_of, get_currency_service()
            )

            return {
                "as_of": as_of.isoformat(),
                "processed_count": processed_count,
                "errors": errors,
            }, 200

        except ValidationError as err:
            return validation_error_response(err)


class ProjectionResource(Resource):
    """Net recurring cash flow over a window, optionally with the occurrences"""

    def get(self):
        try:
            params = projection_query_schema.load(request.args.to_dict())
            start, end = params["start"], params["end"]

            net_usd = calculate_projected_amount(start, end, get_currency_service())
            response = {
                "start": start.isoformat(),
                "end": end.isoformat(),
                "net_usd": str(net_usd),
            }

            if request.args.get("include_occurrences", "").lower() == "true":
                response["occurrences"] = [
                    {
                        "recurring_transaction_id": str(occurrence["recurring_transaction_id"]),
                        "date": occurrence["date"].isoformat(),
                        "type": occurrence["type"].value,
                        "amount": str(occurrence["amount"]),
                        "currency": occurrence["currency"],
                        "description": occurrence["description"],
                    }
                    for occurrence in project_occurrences(start, end)
                ]

            return response, 200

        except ValidationError as err:
            return validation_error_response(err)
