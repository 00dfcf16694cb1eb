from cashflow.extensions import db
from cashflow.models.category import Category
from cashflow.utils.enums import TransactionType
from cashflow.utils.logger import logger
from cashflow.utils.validators import to_uuid


DEFAULT_CATEGORIES = {
    "Salary": TransactionType.INCOME,
    "Bonus": TransactionType.INCOME,
    "Investment": TransactionType.INCOME,
    "Rent": TransactionType.EXPENSE,
    "Utilities": TransactionType.EXPENSE,
    "Subscriptions": TransactionType.EXPENSE,
    "Groceries": TransactionType.EXPENSE,
    "Insurance": TransactionType.EXPENSE,
    "Miscellaneous": None,
}


def category_exists(category_id):
    """Check that a category id refers to a stored category"""
    category_id = to_uuid(category_id)
    if category_id is None:
        return False

    return db.session.get(Category, category_id) is not None


def create_default_categories():
    """
    Create default categories that don't already exist in the database.

    Returns the number of categories created.
    """
    existing_names = {name.lower() for (name,) in db.session.query(Category.name)}

    created = 0
    for name, category_type in DEFAULT_CATEGORIES.items():
        if name.lower() in existing_names:
            continue
        db.session.add(Category(name=name, type=category_type))
        created += 1

    if created:
        db.session.commit()
        logger.info(f"Created {created} default categories")
    else:
        logger.info("All default categories already exist in the database.")

    return created
