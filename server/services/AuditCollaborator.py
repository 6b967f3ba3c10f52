import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class AuditCollaborator:
    """
    Best-effort append-only audit trail.
    A failed write is logged and never reaches the caller.
    """
    COLLECTION = "audit_logs"

    def __init__(self, db):
        self.db = db

    async def record(self, actor_id, action: str, module: str, old_data=None, new_data=None, ip_address=None, notes=None):
        entry = {
            "actorId": actor_id,
            "action": action,
            "module": module,
            "oldData": old_data,
            "newData": new_data,
            "ipAddress": ip_address,
            "notes": notes,
            "timestamp": datetime.now(timezone.utc),
        }
        try:
            await self.db.add(self.COLLECTION, entry)
        except Exception:
            logger.exception("Error creating audit log for %s %s", action, module)
