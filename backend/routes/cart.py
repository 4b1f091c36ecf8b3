from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import Optional

from database import get_db
from models.order import CartItem, OrderType
from utils.catalog import get_listings, listing_domain, listing_price
from utils.checkout import place_orders
from utils.guards import parse_object_id
from utils.security import require_role

router = APIRouter(prefix="/cart", tags=["Cart"])


class CheckoutRequest(BaseModel):
    idempotency_key: Optional[str] = None


def _cart_items(advertiser: dict) -> list[CartItem]:
    return [
        CartItem(
            website_id=str(item["website_id"]),
            type=item["type"],
            price=item.get("price"),
            selected_post_id=str(item["selected_post_id"]) if item.get("selected_post_id") else None,
        )
        for item in advertiser.get("cart", [])
    ]


@router.get("")
async def get_cart(
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    cart = advertiser.get("cart", [])
    listings = await get_listings(db, [item["website_id"] for item in cart])
    items = []
    total = 0

    for item in cart:
        listing = listings.get(item["website_id"])
        if not listing:
            continue

        price = item.get("price")
        if price is None:
            price = listing_price(listing, item["type"]) or 0
        total += price

        items.append({
            "website_id": str(item["website_id"]),
            "domain": listing_domain(listing),
            "type": item["type"],
            "price": price,
            "selected_post_id": str(item["selected_post_id"]) if item.get("selected_post_id") else None,
        })

    return {
        "count": len(items),
        "items": items,
        "total": round(total, 2),
    }


@router.post("/add")
async def add_to_cart(
    data: CartItem,
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    website_id = parse_object_id(data.website_id, "website_id")
    listings = await get_listings(db, [website_id])
    if website_id not in listings:
        raise HTTPException(404, "Website not found")

    line = {
        "website_id": website_id,
        "type": data.type.value,
        "price": data.price,
        "selected_post_id": parse_object_id(data.selected_post_id, "selected_post_id") if data.selected_post_id else None,
        "updated_at": datetime.utcnow(),
    }

    # one line per (website, type)
    cart = [
        item for item in advertiser.get("cart", [])
        if not (item.get("website_id") == website_id and item.get("type") == line["type"])
    ]
    cart.append({**line, "added_at": datetime.utcnow()})

    await db.users.update_one(
        {"_id": advertiser["_id"]},
        {"$set": {"cart": cart, "updated_at": datetime.utcnow()}},
    )

    return {"message": "Cart updated", "count": len(cart)}


@router.delete("/item/{website_id}")
async def remove_cart_item(
    website_id: str,
    type: OrderType = Query(...),
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    wid = parse_object_id(website_id, "website_id")

    res = await db.users.update_one(
        {"_id": advertiser["_id"]},
        {"$pull": {"cart": {"website_id": wid, "type": type.value}}},
    )
    if res.modified_count == 0:
        raise HTTPException(404, "Item not found in cart")

    return {"message": "Item removed"}


@router.delete("")
async def clear_cart(
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    await db.users.update_one(
        {"_id": advertiser["_id"]},
        {"$set": {"cart": [], "updated_at": datetime.utcnow()}},
    )
    return {"message": "Cart cleared"}


@router.post("/checkout", status_code=201)
async def checkout_cart(
    data: CheckoutRequest,
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    result = await place_orders(
        db,
        advertiser["_id"],
        _cart_items(advertiser),
        idempotency_key=data.idempotency_key,
    )

    await db.users.update_one(
        {"_id": advertiser["_id"]},
        {"$set": {"cart": [], "updated_at": datetime.utcnow()}},
    )

    return {"message": "Orders placed successfully", **result}
