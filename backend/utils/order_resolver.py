import logging
import re
from urllib.parse import urlparse

from config.constants import (
    POST_DETAIL_FIELDS,
    POST_SUMMARY_FIELDS,
    TYPE_WRITING_GUEST_POST,
)
from models.content import content_ref_for, content_id_of
from utils.catalog import get_listing, listing_domain
from utils.content_store import find_post, find_recent_writing_posts
from utils.order_meta import attach_order_meta
from utils.serializers import serialize_doc, serialize_order

logger = logging.getLogger(__name__)

# ======================================================
# CROSS-REFERENCE RESOLUTION (read side only)
# ======================================================
# linkInsertion orders keep their post id on link_insertion_id. The stored
# order is never rewritten; the effective post is attached to the response.

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_domain(value: str | None) -> str:
    value = (value or "").strip()
    if not value:
        return ""
    host = urlparse(value if _SCHEME_RE.match(value) else f"https://{value}").hostname or ""
    return host.lower().removeprefix("www.")


def _post_domain(post: dict) -> str:
    return normalize_domain(post.get("domain") or post.get("completeUrl"))


async def _match_writing_post(db, order: dict, fields) -> dict | None:
    """
    writingGuestPost orders placed before the post existed carry no pointer.
    Prefer the advertiser's recent writing post for the same domain,
    otherwise the most recent one.
    """
    candidates = await find_recent_writing_posts(db, order["advertiser_id"], fields)
    if not candidates:
        return None

    website_domain = normalize_domain(listing_domain(await get_listing(db, order["website_id"])))
    if website_domain:
        for post in candidates:
            if _post_domain(post) == website_domain:
                return post

    return candidates[0]


async def resolve_content(db, order: dict, *, detail: bool = False) -> dict | None:
    fields = POST_DETAIL_FIELDS if detail else POST_SUMMARY_FIELDS
    ref = content_ref_for(order)

    post_id = content_id_of(ref)
    if post_id:
        post = await find_post(db, post_id, fields)
        if post is None:
            logger.info("CONTENT_NOT_FOUND order=%s post=%s", order.get("_id"), post_id)
        return post

    if order.get("type") == TYPE_WRITING_GUEST_POST:
        return await _match_writing_post(db, order, fields)

    return None


async def present_order(db, order: dict, *, detail: bool = False) -> dict:
    data = serialize_order(order)
    post = await resolve_content(db, order, detail=detail)

    if post:
        data["post"] = serialize_doc(post)
        data["post_id"] = str(post["_id"])
    else:
        data["post"] = None

    return data


async def present_orders(db, orders: list[dict], *, detail: bool = False) -> list[dict]:
    # Each row points at its own post; resolve independently.
    presented = [await present_order(db, o, detail=detail) for o in orders]
    return await attach_order_meta(db, presented)
