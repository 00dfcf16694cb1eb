from marshmallow import fields


class NaiveDateTime(fields.DateTime):
    """DateTime that stores timezone-aware input as local naive time"""

    def _deserialize(self, value, attr, data, **kwargs):
        result = super()._deserialize(value, attr, data, **kwargs)
        if result.tzinfo is not None:
            result = result.astimezone().replace(tzinfo=None)
        return result
