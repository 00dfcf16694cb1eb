import enum


class TransactionType(enum.Enum):
    """Enum for transaction types"""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionFrequency(enum.Enum):
    """Enum for transaction frequency"""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class OccurrenceAction(enum.Enum):
    """Enum for per-occurrence override actions"""

    SKIP = "SKIP"
    MODIFY = "MODIFY"


class ScheduleState(enum.Enum):
    """Lifecycle state of a recurring transaction at a point in time"""

    ACTIVE_PENDING = "ACTIVE_PENDING"
    ACTIVE_DUE = "ACTIVE_DUE"
    PAUSED = "PAUSED"
    ENDED = "ENDED"
