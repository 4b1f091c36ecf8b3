from datetime import datetime
from bson import ObjectId
from pymongo import DESCENDING

from config.constants import WRITING_POST_TYPE, WRITING_POST_MATCH_LIMIT

# ======================================================
# CONTENT STORE (`posts`)
# ======================================================


def _projection(fields) -> dict | None:
    return {f: 1 for f in fields} if fields else None


async def find_post(db, post_id: ObjectId, fields=None) -> dict | None:
    return await db.posts.find_one({"_id": post_id}, _projection(fields))


async def find_recent_writing_posts(db, advertiser_id, fields=None) -> list[dict]:
    cursor = (
        db.posts.find(
            {"advertiser_id": advertiser_id, "post_type": WRITING_POST_TYPE},
            _projection(tuple(fields) + ("domain", "completeUrl") if fields else None),
        )
        .sort("created_at", DESCENDING)
        .limit(WRITING_POST_MATCH_LIMIT)
    )
    return await cursor.to_list(WRITING_POST_MATCH_LIMIT)


async def set_post_status(db, post_id: ObjectId, status: str) -> bool:
    """Returns False when no post with that id exists."""
    result = await db.posts.update_one(
        {"_id": post_id},
        {"$set": {"status": status, "updated_at": datetime.utcnow()}},
    )
    return result.matched_count > 0
