from datetime import datetime
from sqlalchemy.exc import SQLAlchemyError

from cashflow.celery_app import celery
from cashflow.services.currency import get_currency_service
from cashflow.services.recurring_transaction import process_due_transactions
from cashflow.utils.logger import logger


@celery.task(name="process_recurring_transactions", bind=True, max_retries=3)
def process_recurring_transactions(self, as_of=None):
    """
    Generate every recurring occurrence due by ``as_of`` (ISO string, default now).

    Per-item failures are reported in the result and retried on the next run;
    only a failure of the whole batch retries the task.
    """
    try:
        as_of = datetime.fromisoformat(as_of) if as_of else datetime.now()
        logger.info(f"Processing recurring transactions due before {as_of}")

        processed_count, errors = process_due_transactions(
            as_of, get_currency_service()
        )

        return {
            "as_of": as_of.isoformat(),
            "processed_count": processed_count,
            "error_count": len(errors),
            "errors": errors,
        }

    except SQLAlchemyError as e:
        logger.error(f"Error in process_recurring_transactions task: {str(e)}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=60 * (self.request.retries + 1))
        raise
