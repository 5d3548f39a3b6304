"""
Audit sink.

``record`` appends one ``AuditLog`` row. It runs after the primary
operation has committed and in its own commit, so an audit failure can
never undo or fail the change it describes: errors are logged and rolled
back here, and the caller carries on.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.models.audit_log import AuditLog
from tracker.models.user import User

logger = logging.getLogger(__name__)


def record(
    db: Session,
    actor: User | None,
    action: str,
    target_module: str,
    target_id: int | str | None,
    details: dict[str, Any] | str | None = None,
) -> None:
    """Append an audit entry; never raises.

    Args:
        db: Session of the request; must not hold uncommitted work.
        actor: Resolved caller, or ``None`` for system actions (seeding).
        action: Verb, e.g. ``"UPDATE_STATUS"``.
        target_module: ``"TASK"`` or ``"MILESTONE"``.
        target_id: Affected row id; ``None`` for aggregate entries.
        details: JSON-serialisable description of the change.
    """
    if isinstance(details, str) or details is None:
        details_text = details
    else:
        details_text = json.dumps(details, ensure_ascii=False, default=str)

    entry = AuditLog(
        user_id=actor.id if actor is not None else None,
        username=actor.username if actor is not None else "system",
        action=action,
        target_module=target_module,
        target_id=str(target_id) if target_id is not None else None,
        details=details_text,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "audit: could not record %s on %s/%s", action, target_module, target_id
        )
        return

    logger.debug("audit: %s %s/%s by %s", action, target_module, target_id, entry.username)
