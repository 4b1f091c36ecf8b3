from datetime import datetime
from bson import ObjectId

from config.constants import META_PROPERTIES, META_VALUE_MAX_LENGTH
from utils.errors import InvalidInput

# ======================================================
# ORDER META (`order_meta`)
# ======================================================
# One value per (order_id, meta_property). Free-form notes that do not
# belong on the order document itself.


async def upsert_order_meta(db, order_id: ObjectId, meta_property: str, meta_value: str):
    if meta_property not in META_PROPERTIES:
        raise InvalidInput(f"Unknown meta property: {meta_property}")

    value = (meta_value or "").strip()
    if len(value) > META_VALUE_MAX_LENGTH:
        raise InvalidInput(f"Meta value cannot exceed {META_VALUE_MAX_LENGTH} characters")

    now = datetime.utcnow()
    await db.order_meta.update_one(
        {"order_id": order_id, "meta_property": meta_property},
        {
            "$set": {"meta_value": value, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )


async def delete_order_meta(db, order_id: ObjectId):
    await db.order_meta.delete_many({"order_id": order_id})


async def attach_order_meta(db, orders: list[dict]) -> list[dict]:
    """
    Attach meta values onto already serialized orders (keyed by "id").
    Legacy rejection reasons stored only as meta fill `rejection_reason`.
    """
    if not orders:
        return orders

    order_ids = [ObjectId(o["id"]) for o in orders]
    meta_map: dict[str, dict] = {}
    async for meta in db.order_meta.find({"order_id": {"$in": order_ids}}):
        meta_map.setdefault(str(meta["order_id"]), {})[meta["meta_property"]] = meta.get("meta_value")

    for order in orders:
        meta = meta_map.get(order["id"], {})
        if meta.get("rejectionReason") and not order.get("rejection_reason"):
            order["rejection_reason"] = meta["rejectionReason"]
        order["meta"] = {k: v for k, v in meta.items() if k != "rejectionReason"}

    return orders
