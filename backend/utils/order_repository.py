import math
from datetime import datetime
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from config.constants import ACTOR_ADVERTISER, ACTOR_PUBLISHER, STATUS_COMPLETED
from utils.errors import NotFound, OrderConflict

# ======================================================
# ORDER REPOSITORY (`orders`)
# ======================================================

SORTABLE_FIELDS = {"created_at", "updated_at", "price", "status", "completed_at"}


async def insert_order(db, order: dict) -> dict:
    result = await db.orders.insert_one(order)
    order["_id"] = result.inserted_id
    return order


async def find_order(db, order_id: ObjectId) -> dict | None:
    return await db.orders.find_one({"_id": order_id})


async def get_order_or_404(db, order_id: ObjectId) -> dict:
    order = await find_order(db, order_id)
    if not order:
        raise NotFound("Order not found")
    return order


async def find_orders_page(
    db,
    query: dict,
    *,
    page: int,
    limit: int,
    sort_by: str = "created_at",
    descending: bool = True,
):
    if sort_by not in SORTABLE_FIELDS:
        sort_by = "created_at"

    cursor = (
        db.orders.find(query)
        .sort(sort_by, DESCENDING if descending else ASCENDING)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    orders = await cursor.to_list(limit)
    total = await db.orders.count_documents(query)

    return orders, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def version_filter(order: dict) -> dict:
    # Orders written before versioning have no field at all.
    if "version" in order:
        return {"_id": order["_id"], "version": order["version"]}
    return {"_id": order["_id"], "version": {"$exists": False}}


async def apply_status_update(db, order: dict, *, fields: dict, entry: dict) -> dict:
    """
    Write a status change and its timeline entry in one guarded update.
    Raises OrderConflict when the order changed since it was read.
    """
    updated = await db.orders.find_one_and_update(
        version_filter(order),
        {
            "$set": fields,
            "$push": {"timeline": entry},
            "$inc": {"version": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    if updated:
        return updated

    if not await find_order(db, order["_id"]):
        raise NotFound("Order not found")
    raise OrderConflict()


async def set_rejection_reason(db, order: dict, reason: str) -> dict:
    updated = await db.orders.find_one_and_update(
        version_filter(order),
        {
            "$set": {"rejection_reason": reason, "updated_at": datetime.utcnow()},
            "$inc": {"version": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise OrderConflict()
    return updated


async def delete_order(db, order_id: ObjectId) -> bool:
    result = await db.orders.delete_one({"_id": order_id})
    return result.deleted_count > 0


async def delete_batch(db, batch_id: str) -> int:
    result = await db.orders.delete_many({"batch_id": batch_id})
    return result.deleted_count


# ======================================================
# SCOPES / AGGREGATES
# ======================================================

def scope_query(actor: str, user_id: ObjectId | None) -> dict:
    if actor == ACTOR_PUBLISHER:
        return {"publisher_id": user_id}
    if actor == ACTOR_ADVERTISER:
        return {"advertiser_id": user_id}
    return {}


async def status_totals(db, match: dict) -> list[dict]:
    pipeline = [
        {"$match": match},
        {"$group": {
            "_id": "$status",
            "count": {"$sum": 1},
            "revenue": {"$sum": "$price"},
        }},
    ]
    return await db.orders.aggregate(pipeline).to_list(None)


async def orders_created_between(db, match: dict, start: datetime, end: datetime) -> list[dict]:
    cursor = db.orders.find(
        {**match, "created_at": {"$gte": start, "$lte": end}},
        {"created_at": 1, "status": 1},
    )
    return await cursor.to_list(None)


async def orders_completed_between(db, match: dict, start: datetime, end: datetime) -> list[dict]:
    cursor = db.orders.find(
        {
            **match,
            "status": STATUS_COMPLETED,
            "completed_at": {"$gte": start, "$lte": end},
        },
        {"completed_at": 1, "price": 1},
    )
    return await cursor.to_list(None)
