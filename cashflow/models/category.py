from cashflow.extensions import db
from cashflow.models.base import BaseModel
from cashflow.utils.enums import TransactionType


class Category(BaseModel):
    """Category referenced by recurring and generated transactions"""

    __tablename__ = "categories"

    name = db.Column(db.String(100), nullable=False, unique=True)
    type = db.Column(db.Enum(TransactionType, name="transaction_type"), nullable=True)

    def __repr__(self):
        return f"<Category {self.name}>"
