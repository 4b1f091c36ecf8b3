import asyncio
import logging
from datetime import datetime, timedelta
from database import get_db

CHECK_INTERVAL_SECONDS = 60 * 60  # hourly
RETENTION_DAYS = 90
logger = logging.getLogger(__name__)


async def purge_audit_logs(db, now: datetime | None = None) -> int:
    cutoff = (now or datetime.utcnow()) - timedelta(days=RETENTION_DAYS)
    result = await db.audit_logs.delete_many({"created_at": {"$lt": cutoff}})
    return result.deleted_count


async def audit_cleanup_worker():
    db = get_db()

    while True:
        try:
            await purge_audit_logs(db)
        except Exception:
            logger.exception("AUDIT_CLEANUP_ERROR")

        await asyncio.sleep(CHECK_INTERVAL_SECONDS)
