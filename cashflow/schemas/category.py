from marshmallow import EXCLUDE
from cashflow.extensions import ma
from cashflow.models.category import Category


class CategorySchema(ma.SQLAlchemyAutoSchema):
    """Schema for Category model - used for nested reads"""

    class Meta:
        model = Category
        load_instance = True
        fields = ("id", "name")
        unknown = EXCLUDE
