import uuid


def is_valid_uuid(value):
    """Check whether value parses as a UUID"""
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False


def to_uuid(value):
    """Return value as uuid.UUID, or None when it is not a valid UUID"""
    if isinstance(value, uuid.UUID):
        return value
    if not is_valid_uuid(value):
        return None
    return uuid.UUID(str(value))
