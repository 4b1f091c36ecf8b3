from bson import ObjectId

# ======================================================
# CATALOG LOOKUP (read-only view of `websites`)
# ======================================================

LISTING_PROJECTION = {
    "publisher_id": 1,
    "domain": 1,
    "url": 1,
    "pricing": 1,
}


async def get_listing(db, website_id: ObjectId) -> dict | None:
    return await db.websites.find_one({"_id": website_id}, LISTING_PROJECTION)


async def get_listings(db, website_ids: list[ObjectId]) -> dict:
    """Map of website _id -> listing for every id that exists."""
    cursor = db.websites.find({"_id": {"$in": list(set(website_ids))}}, LISTING_PROJECTION)
    return {listing["_id"]: listing async for listing in cursor}


def listing_price(listing: dict, order_type: str) -> float | None:
    price = (listing.get("pricing") or {}).get(order_type)
    return float(price) if price is not None else None


def listing_domain(listing: dict | None) -> str:
    if not listing:
        return ""
    return listing.get("domain") or listing.get("url") or ""
