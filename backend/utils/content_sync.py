import logging
from datetime import datetime
from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument

from config.constants import CONTENT_STATUS_FOR_ORDER_STATUS
from models.content import content_ref_for, content_id_of
from utils.content_store import set_post_status
from utils.errors import UpstreamResolutionFailure

logger = logging.getLogger(__name__)

# ======================================================
# CONTENT SYNC OUTBOX (`content_sync_outbox`)
# ======================================================
# Keeps a post's status in step with its order. Delivery is at most once:
# an entry is claimed before it is applied and a failed entry stays failed.

OUTBOX_PENDING = "pending"
OUTBOX_PROCESSING = "processing"
OUTBOX_DONE = "done"
OUTBOX_FAILED = "failed"


async def enqueue_content_sync(db, order: dict, new_status: str) -> ObjectId | None:
    """
    Record a post status patch for this transition, if one applies.
    Returns the outbox entry id, or None when there is nothing to sync.
    """
    post_status = CONTENT_STATUS_FOR_ORDER_STATUS.get(new_status)
    if not post_status:
        return None

    post_id = content_id_of(content_ref_for(order))
    if not post_id:
        return None

    entry = {
        "order_id": order["_id"],
        "post_id": post_id,
        "order_status": new_status,
        "post_status": post_status,
        "status": OUTBOX_PENDING,
        "error": None,
        "created_at": datetime.utcnow(),
        "processed_at": None,
    }
    result = await db.content_sync_outbox.insert_one(entry)
    return result.inserted_id


async def _claim(db, query: dict) -> dict | None:
    return await db.content_sync_outbox.find_one_and_update(
        {**query, "status": OUTBOX_PENDING},
        {"$set": {"status": OUTBOX_PROCESSING, "claimed_at": datetime.utcnow()}},
        sort=[("created_at", ASCENDING), ("_id", ASCENDING)],
        return_document=ReturnDocument.AFTER,
    )


async def _apply(db, entry: dict):
    if not await set_post_status(db, entry["post_id"], entry["post_status"]):
        raise UpstreamResolutionFailure(f"Post {entry['post_id']} not found")


async def _finish(db, entry: dict, status: str, error: str | None = None):
    await db.content_sync_outbox.update_one(
        {"_id": entry["_id"]},
        {"$set": {"status": status, "error": error, "processed_at": datetime.utcnow()}},
    )


async def process_entry(db, entry: dict) -> bool:
    try:
        await _apply(db, entry)
    except UpstreamResolutionFailure as e:
        logger.warning(
            "CONTENT_SYNC_UNRESOLVED entry=%s order=%s detail=%s",
            entry["_id"], entry["order_id"], e.detail,
        )
        await _finish(db, entry, OUTBOX_FAILED, str(e.detail))
        return False
    except Exception as e:
        logger.exception("CONTENT_SYNC_ERROR entry=%s order=%s", entry["_id"], entry["order_id"])
        await _finish(db, entry, OUTBOX_FAILED, str(e))
        return False

    await _finish(db, entry, OUTBOX_DONE)
    return True


async def dispatch_content_sync(db, entry_id: ObjectId) -> bool:
    """Deliver one entry right after the order write. Never raises."""
    try:
        entry = await _claim(db, {"_id": entry_id})
    except Exception:
        logger.exception("CONTENT_SYNC_CLAIM_ERROR entry=%s", entry_id)
        return False
    if not entry:
        return False
    return await process_entry(db, entry)


async def drain_content_sync(db, limit: int = 100) -> int:
    """Deliver pending entries left behind. Returns how many succeeded."""
    delivered = 0
    for _ in range(limit):
        entry = await _claim(db, {})
        if not entry:
            break
        if await process_entry(db, entry):
            delivered += 1
    return delivered
