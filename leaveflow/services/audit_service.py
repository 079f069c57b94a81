# leaveflow/services/audit_service.py

from uuid import UUID
from typing import Optional, Dict, Any
from loguru import logger

from leaveflow.models.audit import AuditLog
from leaveflow.core.database import AsyncSessionLocal

# This function manages its own session so it can run after the
# request's transaction has been committed.
async def log_activity(
    action: str,
    actor_id: UUID,
    actor_role: Optional[str] = None,
    actor_name: Optional[str] = None,
    application_id: Optional[UUID] = None,
    remarks: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
):
    """
    Creates an audit log entry in a separate DB session.
    Safe for use in BackgroundTasks.
    """
    async with AsyncSessionLocal() as session:
        try:
            log_entry = AuditLog(
                actor_id=actor_id,
                actor_role=actor_role,
                actor_name=actor_name,
                application_id=application_id,
                action=action,
                remarks=remarks,
                details=details or {}
            )

            session.add(log_entry)
            await session.commit()

        except Exception:
            # The workflow change is already committed; losing the log line
            # must not surface as a failed request.
            logger.exception(f"Audit log write failed for action '{action}'")
            await session.rollback()
