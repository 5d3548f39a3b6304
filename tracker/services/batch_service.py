"""
Batch task mutator backing ``POST /api/tasks/batch``.

One field patch is applied to many tasks at once. COMPLETED tasks are
skipped and reported; everything else named in the request is patched.

Design notes
------------
- The patch is written with a single ``UPDATE ... WHERE id IN (...) AND
  status <> 'COMPLETED'``, so a task completed between the partition read
  and the write is never modified, and every patched row gets the same
  ``updated_at``.
- Partition rows are read ``FOR UPDATE`` so the ``updated``/``skipped``
  lists match what the UPDATE touched on PostgreSQL.
- A patch that completes tasks (``progress = 100``) also skips CANCELLED
  tasks, which may never change status.
- Unknown ids are silently dropped: they appear in neither list.
- A date patch is checked against the stored other date of every row it
  would write. If any row would end before it starts, the whole request is
  a 400 and nothing is written.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.models.task import Task
from tracker.models.user import User
from tracker.schemas.task import BatchUpdateResponse, TaskBatchUpdate
from tracker.services import audit_service
from tracker.services.task_service import (
    reconcile_progress,
    utcnow,
    validate_assignee,
    validate_schedule,
    validate_task_fields,
)
from tracker.utils.constants import AUDIT_MODULE_TASK, TASK_CANCELLED, TASK_COMPLETED

logger = logging.getLogger(__name__)


def _reject_inverted_schedules(db: Session, fields: dict, rows: list) -> None:
    """Raise 400 when a patched date would end up on the wrong side of a stored one."""
    inverted = [
        row.id
        for row in rows
        if _is_inverted(
            fields.get("start_date", row.start_date), fields.get("end_date", row.end_date)
        )
    ]
    if inverted:
        db.rollback()
        logger.warning("batch_update: rejected, inverted schedule for ids=%s", inverted)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"end_date cannot be earlier than start_date for task(s) {inverted}.",
        )


def _is_inverted(start_date, end_date) -> bool:
    return start_date is not None and end_date is not None and end_date < start_date


def batch_update(db: Session, data: TaskBatchUpdate, actor: User) -> BatchUpdateResponse:
    """Apply ``data.updates`` to every non-completed task in ``data.task_ids``.

    Args:
        db: Active SQLAlchemy session.
        data: Target ids and the field patch.
        actor: Resolved caller, recorded in the audit log.

    Returns:
        ``BatchUpdateResponse`` with ``updated`` and ``skipped`` in request
        order.

    Raises:
        HTTPException 400: Empty id list, empty patch, invalid field values,
            unknown assignee, or a date patch that inverts any target's
            schedule.
    """
    task_ids = list(dict.fromkeys(data.task_ids))
    if not task_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No tasks selected.",
        )

    fields = data.updates.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update.",
        )
    validate_task_fields(fields)
    validate_schedule(fields.get("start_date"), fields.get("end_date"))
    if "assigned_to" in fields:
        validate_assignee(db, fields["assigned_to"])
    reconcile_progress(fields)

    frozen = {TASK_COMPLETED}
    if fields.get("status") == TASK_COMPLETED:
        frozen.add(TASK_CANCELLED)

    rows = (
        db.query(Task.id, Task.status, Task.start_date, Task.end_date)
        .filter(Task.id.in_(task_ids))
        .order_by(Task.id.asc())
        .with_for_update()
        .all()
    )
    status_by_id = {row.id: row.status for row in rows}
    updated = [tid for tid in task_ids if tid in status_by_id and status_by_id[tid] not in frozen]
    skipped = [tid for tid in task_ids if status_by_id.get(tid) in frozen]

    if "start_date" in fields or "end_date" in fields:
        _reject_inverted_schedules(db, fields, [row for row in rows if row.id in updated])

    if updated:
        now = utcnow()
        values = dict(fields, updated_at=now)
        if fields.get("status") == TASK_COMPLETED:
            values["actual_end_time"] = now
        try:
            db.query(Task).filter(
                Task.id.in_(updated), Task.status.notin_(sorted(frozen))
            ).update(values, synchronize_session=False)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("batch_update: storage failure for ids=%s", updated)
            raise
    else:
        db.rollback()

    logger.info(
        "batch_update: fields=%s updated=%s skipped=%s", sorted(fields), updated, skipped
    )
    audit_service.record(
        db, actor, "BATCH_UPDATE", AUDIT_MODULE_TASK, None,
        {"fields": sorted(fields), "updated": updated, "skipped": skipped},
    )

    message = f"Updated {len(updated)} task(s)."
    if skipped:
        message += f" Skipped {len(skipped)} locked task(s)."
    return BatchUpdateResponse(message=message, updated=updated, skipped=skipped)
