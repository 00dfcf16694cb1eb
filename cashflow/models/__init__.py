from cashflow.models.category import Category
from cashflow.models.transaction import Transaction
from cashflow.models.recurring_transaction import RecurringTransaction
from cashflow.models.occurrence_override import OccurrenceOverride
