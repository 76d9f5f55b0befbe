from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.models.audit import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    *,
    action: str,
    table_name: str,
    record_id: str,
    user_id: UUID | None = None,
    new_values: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Stage an audit_logs row for a back-office side effect.

    Used by shift closure and Z-Reading generation. Nothing is committed
    here; the row lands with the caller's commit or disappears with its
    rollback.
    """
    entry = AuditLog(
        table_name=table_name,
        record_id=record_id,
        action=action,
        changed_by=user_id,
        new_values=new_values,
        ip_address=ip_address,
    )
    db.add(entry)
    logger.debug("Audit %s on %s/%s by %s", action, table_name, record_id, user_id)
    return entry
