import logging
from datetime import datetime
from bson import ObjectId

from config.constants import (
    ACTOR_ADMIN,
    ACTOR_ADVERTISER,
    ACTOR_PUBLISHER,
    ADMIN_ROLES,
    ORDER_STATUSES,
    STATUS_ADVERTISER_APPROVAL,
    STATUS_COMPLETED,
    STATUS_REJECTED,
    TRANSITION_POLICY,
)
from utils.content_sync import enqueue_content_sync
from utils.errors import InvalidInput, InvalidTransition, Unauthorized
from utils.order_repository import apply_status_update
from utils.order_timeline import timeline_entry

logger = logging.getLogger(__name__)

# ======================================================
# STATUS TRANSITION ENGINE
# ======================================================


def is_admin_role(role: str | None) -> bool:
    return (role or "").strip().lower() in ADMIN_ROLES


def resolve_actor(order: dict, caller_id: ObjectId, caller_role: str | None) -> str:
    """
    Which party the caller acts as on this order.
    A caller on both sides picks by role name, otherwise the
    stricter advertiser rules apply.
    """
    if is_admin_role(caller_role):
        return ACTOR_ADMIN

    is_publisher = order["publisher_id"] == caller_id
    is_advertiser = order["advertiser_id"] == caller_id

    if is_publisher and is_advertiser:
        return ACTOR_PUBLISHER if caller_role == ACTOR_PUBLISHER else ACTOR_ADVERTISER
    if is_publisher:
        return ACTOR_PUBLISHER
    if is_advertiser:
        return ACTOR_ADVERTISER

    raise Unauthorized("You are not authorized to update this order")


def allowed_targets(actor: str, current_status: str) -> set[str]:
    if actor == ACTOR_ADMIN:
        return set(ORDER_STATUSES)
    return TRANSITION_POLICY.get((actor, current_status), set())


def check_transition(actor: str, current_status: str, new_status: str):
    if new_status not in ORDER_STATUSES:
        raise InvalidInput(f"Unknown status: {new_status}")

    if new_status in allowed_targets(actor, current_status):
        return

    if actor == ACTOR_ADVERTISER:
        if current_status != STATUS_ADVERTISER_APPROVAL:
            message = "You can only approve or reject orders that are pending your approval"
        else:
            message = "You can only approve (complete) or reject orders"
    else:
        message = f"Invalid status transition from {current_status} to {new_status}"

    raise InvalidTransition(
        message,
        current_status=current_status,
        attempted_status=new_status,
        actor=actor,
    )


async def change_status(
    db,
    order: dict,
    *,
    caller_id: ObjectId,
    caller_role: str | None,
    new_status: str,
    note: str | None = None,
    rejection_reason: str | None = None,
):
    """
    Validate and apply one status change.
    Returns (updated_order, actor, content_sync_entry_id).
    """
    actor = resolve_actor(order, caller_id, caller_role)
    check_transition(actor, order["status"], new_status)

    now = datetime.utcnow()
    fields = {"status": new_status, "updated_at": now}

    reason = (rejection_reason or "").strip()
    if new_status == STATUS_REJECTED and reason:
        fields["rejection_reason"] = reason

    if new_status == STATUS_COMPLETED and not order.get("completed_at"):
        fields["completed_at"] = now

    updated = await apply_status_update(
        db,
        order,
        fields=fields,
        entry=timeline_entry(status=new_status, actor_id=caller_id, note=note, at=now),
    )

    logger.info(
        "ORDER_STATUS_CHANGED order=%s from=%s to=%s actor=%s",
        order["_id"], order["status"], new_status, actor,
    )

    # Status is already committed here.
    try:
        entry_id = await enqueue_content_sync(db, updated, new_status)
    except Exception:
        logger.exception("CONTENT_SYNC_ENQUEUE_ERROR order=%s status=%s", order["_id"], new_status)
        entry_id = None

    return updated, actor, entry_id
