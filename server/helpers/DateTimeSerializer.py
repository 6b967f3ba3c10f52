from datetime import datetime, timezone

from bson import ObjectId


class DateTimeSerializerVisitor:
    """Visitor that turns Mongo documents into JSON-ready structures.

    Mongo hands datetimes back without tzinfo even though they are stored as
    UTC, so naive values are tagged UTC before being rendered as ISO strings.
    """

    def visit(self, obj):
        if isinstance(obj, dict):
            return {key: self.visit(value) for key, value in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self.visit(item) for item in obj]
        elif isinstance(obj, datetime):
            if obj.tzinfo is None:
                obj = obj.replace(tzinfo=timezone.utc)
            return obj.isoformat()
        elif isinstance(obj, ObjectId):
            return str(obj)
        return obj
