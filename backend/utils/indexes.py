from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

from utils.idempotency import IDEMPOTENCY_TTL_SECONDS


def _normalize_key_pairs(keys):
    return [(k, v) for k, v in keys]


async def _create_index_safe(collection, keys, **kwargs):
    """
    Create index safely.
    If Mongo reports IndexOptionsConflict/IndexKeySpecsConflict for same key pattern,
    drop the conflicting index and recreate with desired options.
    """
    desired_key = _normalize_key_pairs(keys)
    desired_name = kwargs.get("name")
    try:
        await collection.create_index(keys, **kwargs)
        return
    except OperationFailure as e:
        if getattr(e, "code", None) not in {85, 86}:
            raise

        conflicting_names = []
        async for idx in collection.list_indexes():
            idx_key = _normalize_key_pairs(list(idx.get("key", {}).items()))
            if idx_key == desired_key:
                idx_name = idx.get("name")
                if idx_name and idx_name != desired_name:
                    conflicting_names.append(idx_name)

        for idx_name in conflicting_names:
            await collection.drop_index(idx_name)

        await collection.create_index(keys, **kwargs)


async def ensure_indexes(db):
    # Orders
    await _create_index_safe(
        db.orders,
        [("publisher_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)],
        name="orders_publisher_status_created_at_idx",
    )
    await _create_index_safe(
        db.orders,
        [("advertiser_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)],
        name="orders_advertiser_status_created_at_idx",
    )
    await _create_index_safe(
        db.orders,
        [("created_at", ASCENDING), ("status", ASCENDING)],
        name="orders_created_at_status_idx",
    )
    await _create_index_safe(
        db.orders,
        [("publisher_id", ASCENDING), ("status", ASCENDING), ("completed_at", ASCENDING)],
        name="orders_publisher_completed_at_idx",
    )
    await _create_index_safe(
        db.orders,
        [("batch_id", ASCENDING)],
        name="orders_batch_idx",
        sparse=True,
    )

    # Order meta
    await _create_index_safe(
        db.order_meta,
        [("order_id", ASCENDING), ("meta_property", ASCENDING)],
        name="order_meta_order_property_unique",
        unique=True,
    )

    # Content sync outbox
    await _create_index_safe(
        db.content_sync_outbox,
        [("status", ASCENDING), ("created_at", ASCENDING)],
        name="content_sync_status_created_at_idx",
    )

    # Posts (writing-gp fallback lookup)
    await _create_index_safe(
        db.posts,
        [("advertiser_id", ASCENDING), ("post_type", ASCENDING), ("created_at", DESCENDING)],
        name="posts_advertiser_type_created_at_idx",
    )

    # Idempotency
    await _create_index_safe(
        db.idempotency_keys,
        [("key", ASCENDING), ("scope", ASCENDING)],
        name="idempotency_key_scope_unique",
        unique=True,
    )
    await _create_index_safe(
        db.idempotency_keys,
        [("created_at", ASCENDING)],
        name="idempotency_ttl_idx",
        expireAfterSeconds=IDEMPOTENCY_TTL_SECONDS,
    )

    # Audit
    await _create_index_safe(
        db.audit_logs,
        [("created_at", ASCENDING)],
        name="audit_logs_created_at_idx",
    )
