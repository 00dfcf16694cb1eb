class RecurringTransactionError(Exception):
    """Base exception for the recurring transaction engine"""

    status_code = 500

    def __init__(self, message, recurring_transaction_id=None):
        super().__init__(message)
        self.message = message
        self.recurring_transaction_id = recurring_transaction_id


class NotFoundError(RecurringTransactionError):
    """Raised when a recurring transaction id is unknown"""

    status_code = 404


class ConversionError(RecurringTransactionError):
    """Raised when an amount cannot be converted to the base currency"""


class PersistenceError(RecurringTransactionError):
    """Raised when a generated transaction or schedule update cannot be stored"""


class ScheduleError(RecurringTransactionError):
    """Raised when a due-date calculation does not move the schedule forward"""


class CatchUpLimitExceeded(ScheduleError):
    """Raised when a schedule loop does not terminate within the iteration cap"""

    status_code = 422
