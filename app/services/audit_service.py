import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.models import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    user_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str = None,
    details: str = None
):
    try:
        log = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details
        )

        db.add(log)
        db.commit()
    except Exception:
        # Audit logging must never block primary application flows.
        db.rollback()
        logger.exception("Failed to write audit log %s for %s %s", action, entity_type, entity_id)
