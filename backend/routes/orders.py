from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status as http_status
import re

from database import get_db
from config.constants import (
    ACTOR_ADMIN,
    ACTOR_ADVERTISER,
    ACTOR_PUBLISHER,
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    STATUS_REJECTED,
)
from models.order import PlaceOrdersRequest, RejectionReasonPatch, StatusUpdate
from utils.security import get_current_user, require_role
from utils.guards import parse_object_id, status_filter
from utils.errors import InvalidInput, Unauthorized
from utils.checkout import place_orders
from utils.content_sync import dispatch_content_sync
from utils.order_repository import (
    find_orders_page,
    get_order_or_404,
    orders_completed_between,
    orders_created_between,
    scope_query,
    set_rejection_reason,
    status_totals,
)
from utils.order_resolver import present_orders
from utils.order_trends import (
    build_earnings_series,
    build_status_series,
    format_status_totals,
    resolve_range,
)
from utils.transitions import change_status, is_admin_role


router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)


def caller_actor(user: dict) -> str:
    if is_admin_role(user.get("role")):
        return ACTOR_ADMIN
    role = (user.get("role") or "").lower()
    if role in (ACTOR_PUBLISHER, ACTOR_ADVERTISER):
        return role
    raise HTTPException(http_status.HTTP_403_FORBIDDEN, "Insufficient permissions")


def assert_can_view(order: dict, user: dict):
    if is_admin_role(user.get("role")):
        return
    if user["_id"] not in (order["advertiser_id"], order["publisher_id"]):
        raise Unauthorized("You are not authorized to view this order")


# ======================================================
# PLACE ORDERS (ADVERTISER)
# ======================================================

@router.post("", status_code=http_status.HTTP_201_CREATED)
async def create_orders(
    data: PlaceOrdersRequest,
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    result = await place_orders(
        db,
        advertiser["_id"],
        data.items,
        idempotency_key=data.idempotency_key,
    )
    return {"message": "Orders placed successfully", **result}


# ======================================================
# LIST ORDERS
# ======================================================

@router.get("/publisher")
async def list_publisher_orders(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    search: str = Query(""),
    publisher=Depends(require_role("publisher")),
    db=Depends(get_db),
):
    query = status_filter({"publisher_id": publisher["_id"]}, status)

    if search.strip():
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        query["$or"] = [
            {"rejection_reason": pattern},
            {"timeline.note": pattern},
        ]

    orders, pagination = await find_orders_page(db, query, page=page, limit=limit)
    return {
        "orders": await present_orders(db, orders),
        "pagination": pagination,
    }


@router.get("/advertiser")
async def list_advertiser_orders(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    query = status_filter({"advertiser_id": advertiser["_id"]}, status)

    orders, pagination = await find_orders_page(db, query, page=page, limit=limit)
    return {
        "orders": await present_orders(db, orders),
        "pagination": pagination,
    }


# ======================================================
# STATS / TRENDS
# ======================================================

@router.get("/stats")
async def order_stats(
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    match = scope_query(caller_actor(user), user["_id"])
    return {"stats": format_status_totals(await status_totals(db, match))}


async def _status_trends(db, match: dict, period, start_date, end_date) -> dict:
    start, end, period = resolve_range(period=period, start_date=start_date, end_date=end_date)
    rows = await orders_created_between(db, match, start, end)
    return {
        "data": build_status_series(rows, start, end),
        "period": period,
    }


@router.get("/publisher/stats/trends")
async def publisher_trends(
    period: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    publisher=Depends(require_role("publisher")),
    db=Depends(get_db),
):
    match = scope_query(ACTOR_PUBLISHER, publisher["_id"])
    return await _status_trends(db, match, period, start_date, end_date)


@router.get("/advertiser/stats/trends")
async def advertiser_trends(
    period: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    advertiser=Depends(require_role("advertiser")),
    db=Depends(get_db),
):
    match = scope_query(ACTOR_ADVERTISER, advertiser["_id"])
    return await _status_trends(db, match, period, start_date, end_date)


@router.get("/publisher/earnings/trends")
async def publisher_earnings_trends(
    period: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    publisher=Depends(require_role("publisher")),
    db=Depends(get_db),
):
    start, end, period = resolve_range(period=period, start_date=start_date, end_date=end_date)
    rows = await orders_completed_between(db, scope_query(ACTOR_PUBLISHER, publisher["_id"]), start, end)
    return {**build_earnings_series(rows, start, end), "period": period}


# ======================================================
# SINGLE ORDER
# ======================================================

@router.get("/{order_id}")
async def get_order(
    order_id: str,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    order = await get_order_or_404(db, parse_object_id(order_id, "order_id"))
    assert_can_view(order, user)

    [presented] = await present_orders(db, [order], detail=True)
    return {"order": presented}


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    data: StatusUpdate,
    background_tasks: BackgroundTasks,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    order = await get_order_or_404(db, parse_object_id(order_id, "order_id"))

    updated, _, sync_entry_id = await change_status(
        db,
        order,
        caller_id=user["_id"],
        caller_role=user.get("role"),
        new_status=data.status.value,
        note=data.note,
        rejection_reason=data.rejection_reason,
    )
    if sync_entry_id:
        background_tasks.add_task(dispatch_content_sync, db, sync_entry_id)

    [presented] = await present_orders(db, [updated], detail=True)
    return {
        "message": "Order status updated successfully",
        "order": presented,
    }


@router.patch("/{order_id}/rejection-reason")
async def update_rejection_reason(
    order_id: str,
    data: RejectionReasonPatch,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    order = await get_order_or_404(db, parse_object_id(order_id, "order_id"))

    if not is_admin_role(user.get("role")) and order["publisher_id"] != user["_id"]:
        raise Unauthorized("Only the publisher can edit the rejection reason")

    if order["status"] != STATUS_REJECTED:
        raise InvalidInput("Rejection reason can only be set on rejected orders")

    reason = data.rejection_reason.strip()
    if not reason:
        raise InvalidInput("Rejection reason is required")

    updated = await set_rejection_reason(db, order, reason)
    [presented] = await present_orders(db, [updated], detail=True)
    return {"order": presented}
