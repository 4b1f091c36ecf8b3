import asyncio
import logging
from database import get_db
from config.env import CONTENT_SYNC_INTERVAL_SECONDS
from utils.content_sync import drain_content_sync

logger = logging.getLogger(__name__)


async def content_sync_worker():
    """Sweep outbox entries whose post-response dispatch never ran."""
    db = get_db()

    while True:
        try:
            delivered = await drain_content_sync(db)
            if delivered:
                logger.info("CONTENT_SYNC_SWEEP delivered=%s", delivered)
        except Exception:
            logger.exception("CONTENT_SYNC_WORKER_ERROR")

        await asyncio.sleep(CONTENT_SYNC_INTERVAL_SECONDS)
