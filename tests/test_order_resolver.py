"""
Read-side resolution of an order's content record.
"""

from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from utils.order_resolver import normalize_domain, present_order, present_orders, resolve_content


@pytest.mark.parametrize("form", ["raw", "string", "populated"])
async def test_link_insertion_resolves_through_legacy_field(db, make_order, post, form):
    stored = {
        "raw": post["_id"],
        "string": str(post["_id"]),
        "populated": {"_id": post["_id"], "anchorText": "fast builds"},
    }[form]
    order = await make_order(type="linkInsertion", link_insertion_id=stored)

    presented = await present_order(db, order, detail=True)

    assert presented["post"]["id"] == str(post["_id"])
    assert presented["post"]["title"] == post["title"]
    assert presented["post_id"] == str(post["_id"])
    assert presented["link_insertion_id"] == str(post["_id"])

    # resolution never rewrites the stored order
    raw = await db.orders.find_one({"_id": order["_id"]})
    assert raw["post_id"] is None


async def test_post_id_is_trusted(db, make_order, post):
    order = await make_order(type="linkInsertion", post_id=post["_id"], link_insertion_id=ObjectId())
    resolved = await resolve_content(db, order)
    assert resolved["_id"] == post["_id"]


async def test_missing_content_degrades_to_none(db, make_order):
    order = await make_order(type="linkInsertion", link_insertion_id=ObjectId())
    presented = await present_order(db, order)
    assert presented["post"] is None
    assert presented["post_id"] is None


async def test_summary_projection_for_lists(db, make_order, post):
    await db.posts.update_one({"_id": post["_id"]}, {"$set": {"metaTitle": "Meta"}})
    order = await make_order(post_id=post["_id"])

    summary = await resolve_content(db, order)
    detail = await resolve_content(db, order, detail=True)

    assert "metaTitle" not in summary
    assert detail["metaTitle"] == "Meta"


async def test_list_rows_resolve_independently(db, make_order, advertiser):
    posts = []
    for title in ("first", "second"):
        doc = {"_id": ObjectId(), "advertiser_id": advertiser["_id"], "title": title, "content": ""}
        await db.posts.insert_one(doc)
        posts.append(doc)

    orders = [
        await make_order(type="linkInsertion", link_insertion_id=posts[0]["_id"]),
        await make_order(type="guestPost", post_id=posts[1]["_id"]),
        await make_order(type="guestPost"),
    ]

    presented = await present_orders(db, orders)

    assert [p["post"]["title"] if p["post"] else None for p in presented] == ["first", "second", None]
    assert all(p["meta"] == {} for p in presented)


class TestWritingGuestPostFallback:

    async def _writing_post(self, db, advertiser, title, domain=None, age_days=0):
        doc = {
            "_id": ObjectId(),
            "advertiser_id": advertiser["_id"],
            "post_type": "writing-gp",
            "title": title,
            "content": "",
            "domain": domain,
            "created_at": datetime.utcnow() - timedelta(days=age_days),
        }
        await db.posts.insert_one(doc)
        return doc

    async def test_prefers_matching_domain(self, db, make_order, advertiser):
        await self._writing_post(db, advertiser, "other site", domain="elsewhere.com", age_days=0)
        match = await self._writing_post(db, advertiser, "our site", domain="techblog.io", age_days=3)

        order = await make_order(type="writingGuestPost")
        resolved = await resolve_content(db, order)
        assert resolved["_id"] == match["_id"]

    async def test_falls_back_to_most_recent(self, db, make_order, advertiser):
        recent = await self._writing_post(db, advertiser, "recent", domain="a.com", age_days=1)
        await self._writing_post(db, advertiser, "old", domain="b.com", age_days=5)

        order = await make_order(type="writingGuestPost")
        resolved = await resolve_content(db, order)
        assert resolved["_id"] == recent["_id"]

    async def test_nothing_to_match(self, db, make_order):
        order = await make_order(type="writingGuestPost")
        assert await resolve_content(db, order) is None


@pytest.mark.parametrize("raw,expected", [
    ("https://www.TechBlog.io/path", "techblog.io"),
    ("techblog.io", "techblog.io"),
    ("www.techblog.io", "techblog.io"),
    ("", ""),
    (None, ""),
])
def test_normalize_domain(raw, expected):
    assert normalize_domain(raw) == expected
