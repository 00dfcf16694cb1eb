import uuid
from datetime import datetime
from cashflow.extensions import db


class BaseModel(db.Model):
    """Abstract base with a UUID primary key and audit timestamps"""

    __abstract__ = True

    id = db.Column(db.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )
