from fastapi import APIRouter, BackgroundTasks, Depends, Query
import re
from typing import Literal, Optional

from database import get_db
from config.constants import (
    ACTOR_ADMIN,
    ADMIN_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    ORDER_TYPES,
)
from models.order import StatusUpdate
from utils.audit import log_audit
from utils.content_sync import dispatch_content_sync
from utils.errors import InvalidInput, NotFound
from utils.guards import parse_object_id, status_filter
from utils.order_meta import delete_order_meta, upsert_order_meta
from utils.order_repository import (
    delete_order,
    find_orders_page,
    get_order_or_404,
    orders_created_between,
    status_totals,
)
from utils.order_resolver import present_orders
from utils.order_trends import build_status_series, resolve_range
from utils.security import require_admin
from utils.transitions import change_status


router = APIRouter(prefix="/admin", tags=["Admin"])


# =====================================================
# LIST ALL ORDERS
# =====================================================

@router.get("/orders")
async def admin_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(ADMIN_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    search: str = Query(""),
    advertiser_id: Optional[str] = Query(None),
    publisher_id: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    query = status_filter({}, status)

    if advertiser_id:
        query["advertiser_id"] = parse_object_id(advertiser_id, "advertiser_id")
    if publisher_id:
        query["publisher_id"] = parse_object_id(publisher_id, "publisher_id")
    if type and type != "all":
        if type not in ORDER_TYPES:
            raise InvalidInput(f"Invalid type filter: {type}")
        query["type"] = type

    if search.strip():
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        conditions = [
            {"rejection_reason": pattern},
            {"timeline.note": pattern},
        ]

        meta_order_ids = [
            m["order_id"]
            async for m in db.order_meta.find({"meta_value": pattern}, {"order_id": 1})
        ]
        if meta_order_ids:
            conditions.append({"_id": {"$in": meta_order_ids}})

        query["$or"] = conditions

    orders, pagination = await find_orders_page(
        db,
        query,
        page=page,
        limit=limit,
        sort_by=sort_by,
        descending=sort_order == "desc",
    )

    totals = await status_totals(db, {})
    return {
        "orders": await present_orders(db, orders),
        "pagination": pagination,
        "stats": {
            "stats": [{"status": row["_id"], "count": row["count"]} for row in totals],
            "total": sum(row["count"] for row in totals),
        },
    }


@router.get("/orders/by-user/{user_id}")
async def admin_orders_by_user(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(ADMIN_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    uid = parse_object_id(user_id, "user_id")
    query = {"$or": [{"advertiser_id": uid}, {"publisher_id": uid}]}

    orders, pagination = await find_orders_page(db, query, page=page, limit=limit)
    return {
        "orders": await present_orders(db, orders),
        "pagination": pagination,
    }


# =====================================================
# TRENDS
# =====================================================

@router.get("/orders/trends")
async def admin_order_trends(
    period: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    publisher_id: Optional[str] = Query(None),
    advertiser_id: Optional[str] = Query(None),
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    match = {}
    if publisher_id:
        match["publisher_id"] = parse_object_id(publisher_id, "publisher_id")
    if advertiser_id:
        match["advertiser_id"] = parse_object_id(advertiser_id, "advertiser_id")

    start, end, period = resolve_range(period=period, start_date=start_date, end_date=end_date)
    rows = await orders_created_between(db, match, start, end)
    return {
        "data": build_status_series(rows, start, end),
        "period": period,
    }


# =====================================================
# FORCE STATUS
# =====================================================

@router.patch("/orders/{order_id}")
async def admin_update_order_status(
    order_id: str,
    data: StatusUpdate,
    background_tasks: BackgroundTasks,
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    order = await get_order_or_404(db, parse_object_id(order_id, "order_id"))

    updated, _, sync_entry_id = await change_status(
        db,
        order,
        caller_id=admin["_id"],
        caller_role=admin.get("role"),
        new_status=data.status.value,
        note=data.note,
        rejection_reason=data.rejection_reason,
    )
    if sync_entry_id:
        background_tasks.add_task(dispatch_content_sync, db, sync_entry_id)

    if data.note and data.note.strip():
        await upsert_order_meta(db, order["_id"], "internalNote", data.note)

    await log_audit(
        db,
        actor_id=admin["_id"],
        actor_role=ACTOR_ADMIN,
        action="ORDER_STATUS_FORCED",
        target_id=order["_id"],
        metadata={"from": order["status"], "to": data.status.value},
    )

    [presented] = await present_orders(db, [updated], detail=True)
    return {
        "message": "Order status updated successfully",
        "order": presented,
    }


# =====================================================
# DELETE
# =====================================================

@router.delete("/orders/{order_id}")
async def admin_delete_order(
    order_id: str,
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    oid = parse_object_id(order_id, "order_id")
    order = await get_order_or_404(db, oid)

    if not await delete_order(db, oid):
        raise NotFound("Order not found")
    await delete_order_meta(db, oid)

    await log_audit(
        db,
        actor_id=admin["_id"],
        actor_role=ACTOR_ADMIN,
        action="ORDER_DELETED",
        target_id=oid,
        metadata={"status": order["status"], "type": order["type"]},
    )

    return {"message": "Order deleted successfully"}
