"""
Content sync outbox: post status follows its order, at most once.
"""

from datetime import datetime, timedelta

from bson import ObjectId

from utils import content_sync
from utils.content_sync import (
    dispatch_content_sync,
    drain_content_sync,
    enqueue_content_sync,
)


async def test_no_entry_without_pointer_or_mapped_status(db, make_order, post):
    bare = await make_order()
    assert await enqueue_content_sync(db, bare, "inProgress") is None

    linked = await make_order(post_id=post["_id"])
    assert await enqueue_content_sync(db, linked, "advertiserApproval") is None
    assert await enqueue_content_sync(db, linked, "rejected") is None


async def test_dispatch_patches_post(db, make_order, post):
    order = await make_order(post_id=post["_id"])
    entry_id = await enqueue_content_sync(db, order, "completed")

    assert await dispatch_content_sync(db, entry_id) is True

    stored_post = await db.posts.find_one({"_id": post["_id"]})
    assert stored_post["status"] == "approved"
    entry = await db.content_sync_outbox.find_one({"_id": entry_id})
    assert entry["status"] == "done"


async def test_dispatch_is_at_most_once(db, make_order, post):
    order = await make_order(post_id=post["_id"])
    entry_id = await enqueue_content_sync(db, order, "inProgress")

    assert await dispatch_content_sync(db, entry_id) is True
    await db.posts.update_one({"_id": post["_id"]}, {"$set": {"status": "draft"}})

    assert await dispatch_content_sync(db, entry_id) is False
    assert (await db.posts.find_one({"_id": post["_id"]}))["status"] == "draft"


async def test_missing_post_marks_failed_without_raising(db, make_order):
    order = await make_order(post_id=ObjectId())
    entry_id = await enqueue_content_sync(db, order, "inProgress")

    assert await dispatch_content_sync(db, entry_id) is False

    entry = await db.content_sync_outbox.find_one({"_id": entry_id})
    assert entry["status"] == "failed"
    assert "not found" in entry["error"]


async def test_unexpected_error_is_swallowed(db, make_order, post, monkeypatch):
    order = await make_order(post_id=post["_id"])
    entry_id = await enqueue_content_sync(db, order, "inProgress")

    async def broken(db, post_id, status):
        raise ConnectionError("content store down")

    monkeypatch.setattr(content_sync, "set_post_status", broken)

    assert await dispatch_content_sync(db, entry_id) is False
    entry = await db.content_sync_outbox.find_one({"_id": entry_id})
    assert entry["status"] == "failed"

    # failed entries are not picked up again
    monkeypatch.undo()
    assert await drain_content_sync(db) == 0


async def test_drain_delivers_pending(db, make_order, post):
    first = await make_order(post_id=post["_id"])
    second = await make_order(type="linkInsertion", link_insertion_id={"_id": post["_id"]})

    await enqueue_content_sync(db, first, "inProgress")
    await enqueue_content_sync(db, second, "completed")

    assert await drain_content_sync(db) == 2
    assert await db.content_sync_outbox.count_documents({"status": "pending"}) == 0
    assert (await db.posts.find_one({"_id": post["_id"]}))["status"] == "approved"


async def test_drain_applies_oldest_first(db, make_order, post):
    order = await make_order(post_id=post["_id"])

    newer = await enqueue_content_sync(db, order, "completed")
    older = await enqueue_content_sync(db, order, "inProgress")
    now = datetime.utcnow()
    await db.content_sync_outbox.update_one({"_id": newer}, {"$set": {"created_at": now}})
    await db.content_sync_outbox.update_one({"_id": older}, {"$set": {"created_at": now - timedelta(minutes=5)}})

    assert await drain_content_sync(db) == 2
    assert (await db.posts.find_one({"_id": post["_id"]}))["status"] == "approved"
