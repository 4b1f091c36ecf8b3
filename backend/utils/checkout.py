import logging
import uuid
from datetime import datetime
from bson import ObjectId

from config.constants import (
    POST_ID_TYPES,
    STATUS_REQUESTED,
    TYPE_LINK_INSERTION,
)
from models.order import CartItem
from utils.catalog import get_listings, listing_price
from utils.errors import InvalidInput, NotFound
from utils.guards import parse_object_id
from utils.idempotency import (
    reserve_idempotency_key,
    complete_idempotency_key,
    clear_idempotency_key,
)
from utils.order_repository import insert_order, delete_batch
from utils.order_timeline import timeline_entry
from utils.serializers import serialize_order

logger = logging.getLogger(__name__)

PLACE_ORDERS_SCOPE = "place_orders"

# ======================================================
# CART MATERIALIZER
# ======================================================


def build_order(
    *,
    advertiser_id: ObjectId,
    listing: dict,
    item: CartItem,
    batch_id: str,
    now: datetime,
) -> dict:
    order_type = item.type.value

    price = item.price if item.price is not None else listing_price(listing, order_type)
    if price is None or price <= 0:
        raise InvalidInput(f"No price available for {order_type} on website {listing['_id']}")

    order = {
        "advertiser_id": advertiser_id,
        "publisher_id": listing["publisher_id"],
        "website_id": listing["_id"],
        "type": order_type,
        "post_id": None,
        "link_insertion_id": None,
        "price": float(price),
        "status": STATUS_REQUESTED,
        "timeline": [
            timeline_entry(status=STATUS_REQUESTED, actor_id=advertiser_id, note="Order placed", at=now),
        ],
        "rejection_reason": None,
        "version": 0,
        "batch_id": batch_id,
        "created_at": now,
        "updated_at": now,
        "completed_at": None,
    }

    if item.selected_post_id:
        selected = parse_object_id(item.selected_post_id, "selected_post_id")
        if order_type in POST_ID_TYPES:
            order["post_id"] = selected
        elif order_type == TYPE_LINK_INSERTION:
            # Historical layout: the post id lives on link_insertion_id.
            order["link_insertion_id"] = selected

    return order


async def _resolve_listings(db, items: list[CartItem]) -> list[dict]:
    website_ids = [parse_object_id(item.website_id, "website_id") for item in items]
    listings = await get_listings(db, website_ids)

    resolved = []
    for website_id in website_ids:
        listing = listings.get(website_id)
        if not listing:
            raise NotFound(f"Website with ID {website_id} not found")
        if not listing.get("publisher_id"):
            raise InvalidInput(f"Website with ID {website_id} has no publisher")
        resolved.append(listing)
    return resolved


async def _materialize(db, advertiser_id: ObjectId, items: list[CartItem]) -> dict:
    listings = await _resolve_listings(db, items)

    now = datetime.utcnow()
    batch_id = uuid.uuid4().hex
    orders = [
        build_order(advertiser_id=advertiser_id, listing=listing, item=item, batch_id=batch_id, now=now)
        for item, listing in zip(items, listings)
    ]

    created = []
    try:
        for order in orders:
            created.append(await insert_order(db, order))
    except Exception:
        logger.exception("PLACE_ORDERS_ERROR batch=%s inserted=%s", batch_id, len(created))
        if created:
            removed = await delete_batch(db, batch_id)
            logger.warning("PLACE_ORDERS_COMPENSATED batch=%s removed=%s", batch_id, removed)
        raise

    logger.info("ORDERS_PLACED advertiser=%s batch=%s count=%s", advertiser_id, batch_id, len(created))

    return {
        "orders": [serialize_order(o) for o in created],
        "count": len(created),
    }


async def place_orders(
    db,
    advertiser_id: ObjectId,
    items: list[CartItem],
    idempotency_key: str | None = None,
) -> dict:
    """
    One order per cart line item, in list order.
    Every listing is resolved before anything is written.
    """
    if not items:
        raise InvalidInput("Cart items are required")

    if not idempotency_key:
        return await _materialize(db, advertiser_id, items)

    scope = f"{PLACE_ORDERS_SCOPE}:{advertiser_id}"
    existing = await reserve_idempotency_key(db=db, key=idempotency_key, scope=scope)
    if existing:
        return existing

    try:
        response = await _materialize(db, advertiser_id, items)
    except Exception:
        await clear_idempotency_key(db=db, key=idempotency_key, scope=scope)
        raise

    await complete_idempotency_key(db=db, key=idempotency_key, scope=scope, response=response)
    return response
