from datetime import datetime
from bson import ObjectId

def timeline_entry(
    *,
    status: str,
    actor_id=None,
    note: str | None = None,
    at: datetime | None = None,
) -> dict:
    """
    Single source of truth for order timeline entries.
    Entries are embedded on the order and only ever appended.
    """

    return {
        "status": status,
        "timestamp": at or datetime.utcnow(),
        "note": note,
        "updated_by": ObjectId(actor_id) if actor_id else None,
    }
