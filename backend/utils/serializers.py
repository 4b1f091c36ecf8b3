from bson import ObjectId
from datetime import datetime

from models.content import normalize_reference_id


def serialize_object_id(value):
    return str(value) if isinstance(value, ObjectId) else value


def serialize_reference(value):
    oid = normalize_reference_id(value)
    return str(oid) if oid else None


def serialize_datetime(value):
    return value.isoformat() if isinstance(value, datetime) else None


def serialize_doc(doc: dict) -> dict:
    if not doc:
        return doc

    doc = dict(doc)
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            doc[k] = str(v)
        elif isinstance(v, datetime):
            doc[k] = v.isoformat()
    if "_id" in doc:
        doc["id"] = doc.pop("_id")
    return doc


def serialize_timeline_entry(entry: dict) -> dict:
    return {
        "status": entry.get("status"),
        "timestamp": serialize_datetime(entry.get("timestamp")),
        "note": entry.get("note"),
        "updated_by": serialize_object_id(entry.get("updated_by")),
    }


def serialize_order(order: dict) -> dict:
    return {
        "id": str(order["_id"]),
        "advertiser_id": serialize_object_id(order["advertiser_id"]),
        "publisher_id": serialize_object_id(order["publisher_id"]),
        "website_id": serialize_object_id(order["website_id"]),

        "type": order["type"],

        "post_id": serialize_reference(order.get("post_id")),
        "link_insertion_id": serialize_reference(order.get("link_insertion_id")),

        "price": order["price"],

        "status": order["status"],

        "timeline": [serialize_timeline_entry(e) for e in order.get("timeline", [])],

        "rejection_reason": order.get("rejection_reason"),

        "created_at": serialize_datetime(order.get("created_at")),

        "updated_at": serialize_datetime(order.get("updated_at")),

        "completed_at": serialize_datetime(order.get("completed_at")),
    }
