from bson import ObjectId
from bson.errors import InvalidId

from config.constants import ORDER_STATUSES
from utils.errors import InvalidInput

# -------------------------------
# ObjectId Guard
# -------------------------------

def parse_object_id(value, name: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not value:
        raise InvalidInput(f"{name} is required")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidInput(f"Invalid {name}")


# -------------------------------
# Status Filter Guard
# -------------------------------

def status_filter(query: dict, status: str | None) -> dict:
    if status and status != "all":
        if status not in ORDER_STATUSES:
            raise InvalidInput(f"Invalid status filter: {status}")
        query["status"] = status
    return query
