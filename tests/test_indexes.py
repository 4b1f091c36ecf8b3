from utils.indexes import ensure_indexes


async def test_ensure_indexes_is_repeatable(db):
    await ensure_indexes(db)
    await ensure_indexes(db)

    order_indexes = await db.orders.index_information()
    assert "orders_publisher_status_created_at_idx" in order_indexes
    assert "orders_batch_idx" in order_indexes

    meta_indexes = await db.order_meta.index_information()
    assert meta_indexes["order_meta_order_property_unique"]["unique"] is True

    assert "idempotency_key_scope_unique" in await db.idempotency_keys.index_information()
