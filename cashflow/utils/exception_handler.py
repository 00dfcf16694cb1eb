from marshmallow import ValidationError

from cashflow.utils.exceptions import RecurringTransactionError, NotFoundError
from cashflow.utils.responses import validation_error_response, not_found_response
from cashflow.utils.logger import logger


def handle_error(app):
    """Register JSON error handlers for the service's exception types"""

    @app.errorhandler(ValidationError)
    def handle_validation_error(err):
        logger.debug(f"Validation error: {err.messages}")
        return validation_error_response(err)

    @app.errorhandler(NotFoundError)
    def handle_not_found(err):
        logger.warning(err.message)
        return not_found_response(err)

    @app.errorhandler(RecurringTransactionError)
    def handle_recurring_error(err):
        logger.error(f"Recurring transaction error: {err.message}")
        return {"error": err.message}, err.status_code
