import logging
from datetime import datetime

logger = logging.getLogger(__name__)


async def log_audit(
    db,
    actor_id,
    actor_role: str,
    action: str,
    target_id=None,
    metadata: dict | None = None
):
    """Record an administrative action on an order in `audit_logs`."""
    await db.audit_logs.insert_one({
        "actor_id": actor_id,
        "actor_role": actor_role,
        "action": action,
        "target_id": target_id,
        "metadata": metadata or {},
        "created_at": datetime.utcnow()
    })
    logger.info("AUDIT %s actor=%s target=%s", action, actor_id, target_id)
