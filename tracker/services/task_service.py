"""
Task lifecycle service.

All database access for the ``/api/tasks`` endpoints (except batch updates,
see ``batch_service``) lives here: creation, partial field updates, guarded
status transitions and reads.

Design notes
------------
- Transitions follow ``constants.TASK_TRANSITIONS``. COMPLETED and CANCELLED
  are terminal; entering IN_PROGRESS is gated on every predecessor being
  COMPLETED (``dependency_service``).
- Progress and status are reconciled before every write by
  ``reconcile_progress``: ``progress = 100`` forces COMPLETED and COMPLETED
  forces ``progress = 100``. The table-level CHECK constraint is the
  backstop.
- Every write locks the task row with ``SELECT ... FOR UPDATE`` before
  reading its status, so two concurrent transitions on one task serialise.
- All validation runs before the first write. Once writing starts only a
  storage error aborts, and it rolls the whole request back.
- Audit entries are written after the primary commit (``audit_service``).
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from tracker.models.project import Project
from tracker.models.task import Task
from tracker.models.task_dependency import TaskDependency
from tracker.models.user import User
from tracker.schemas.task import (
    TaskCreate,
    TaskResponse,
    TaskStatusChange,
    TaskUpdate,
)
from tracker.services import audit_service
from tracker.services.dependency_service import raise_if_blocked, validate_predecessors
from tracker.utils.constants import (
    AUDIT_MODULE_TASK,
    COMPLETE_PROGRESS,
    DEPENDENCY_TYPE_FINISH_TO_START,
    TASK_CANCELLED,
    TASK_COMPLETED,
    TASK_DEPENDENCY_GATED,
    TASK_IN_PROGRESS,
    TASK_PAUSED,
    TASK_PENDING,
    TASK_PRIORITIES,
    TASK_REASON_REQUIRED,
    TASK_STATUSES,
    TASK_TERMINAL_STATUSES,
    TASK_TRANSITIONS,
    TASK_TYPES,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, matching the ``DateTime`` columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def reconcile_progress(values: dict[str, Any]) -> dict[str, Any]:
    """Apply the progress/status coupling to a set of pending column values.

    ``progress = 100`` implies COMPLETED and COMPLETED implies
    ``progress = 100``. The dict is updated in place and returned.
    """
    if values.get("progress") == COMPLETE_PROGRESS:
        values["status"] = TASK_COMPLETED
    if values.get("status") == TASK_COMPLETED:
        values["progress"] = COMPLETE_PROGRESS
    return values


def validate_task_fields(values: dict[str, Any]) -> None:
    """Check enumerated columns present in ``values``.

    Raises:
        HTTPException 400: Unknown priority or type.
    """
    priority = values.get("priority")
    if priority is not None and priority not in TASK_PRIORITIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid priority '{priority}'. Valid values: {TASK_PRIORITIES}.",
        )
    task_type = values.get("type")
    if task_type is not None and task_type not in TASK_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid type '{task_type}'. Valid values: {TASK_TYPES}.",
        )


def validate_schedule(
    start_date: datetime.date | None, end_date: datetime.date | None
) -> None:
    """Raise 400 when both dates are set and ``end_date`` precedes ``start_date``."""
    if start_date is not None and end_date is not None and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date cannot be earlier than start_date.",
        )


def validate_assignee(db: Session, user_id: int | None) -> None:
    """Raise 400 when ``user_id`` names no existing user."""
    if user_id is None:
        return
    if db.query(User.id).filter(User.id == user_id).first() is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User with ID {user_id} does not exist.",
        )


def _get_task_or_404(db: Session, task_id: int, lock: bool = False) -> Task:
    query = db.query(Task).filter(Task.id == task_id)
    if lock:
        query = query.with_for_update()
    task: Task | None = query.first()
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with ID {task_id} not found.",
        )
    return task


def _validate_transition(
    task: Task, target: str, reason: str | None, implied_completion: bool = False
) -> None:
    """Raise 400 when ``task`` may not move to ``target``.

    With ``implied_completion`` (a field update reaching ``progress = 100``)
    COMPLETED is accepted from any non-terminal state.
    """
    if target not in TASK_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status '{target}'. Valid values: {TASK_STATUSES}.",
        )
    allowed = TASK_TRANSITIONS[task.status]
    if target not in allowed and not (implied_completion and target == TASK_COMPLETED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot move a task from {task.status} to {target}.",
        )
    if target in TASK_REASON_REQUIRED and not reason:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A reason is required to move a task to {target}.",
        )


def _stamp_transition(task: Task, target: str, now: datetime.datetime) -> None:
    """Record the lifecycle timestamps that go with entering ``target``."""
    if target == TASK_IN_PROGRESS and task.actual_start_time is None:
        task.actual_start_time = now
    elif target == TASK_PAUSED:
        task.paused_at = now
    elif target == TASK_COMPLETED:
        task.progress = COMPLETE_PROGRESS
        task.actual_end_time = now


def _replace_edges(db: Session, task_id: int, predecessor_ids: list[int]) -> None:
    """Swap the task's stored predecessor set for ``predecessor_ids``."""
    db.query(TaskDependency).filter(TaskDependency.task_id == task_id).delete(
        synchronize_session="fetch"
    )
    db.add_all(
        TaskDependency(
            task_id=task_id,
            predecessor_id=predecessor_id,
            type=DEPENDENCY_TYPE_FINISH_TO_START,
        )
        for predecessor_id in predecessor_ids
    )


def _commit(db: Session, operation: str, task_id: int | None) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("%s: storage failure for task id=%s", operation, task_id)
        raise


# ---------------------------------------------------------------------------
# Public service functions — read operations
# ---------------------------------------------------------------------------


def list_tasks(db: Session, project_id: int | None = None) -> list[TaskResponse]:
    """Return tasks ordered by id, optionally limited to one project."""
    query = db.query(Task).options(selectinload(Task.predecessor_edges))
    if project_id is not None:
        query = query.filter(Task.project_id == project_id)
    tasks = query.order_by(Task.id.asc()).all()

    logger.debug("list_tasks: project_id=%s count=%d", project_id, len(tasks))
    return [TaskResponse.model_validate(task) for task in tasks]


def get_task(db: Session, task_id: int) -> TaskResponse:
    """Return a single task with its predecessor ids.

    Raises:
        HTTPException 404: If the task does not exist.
    """
    return TaskResponse.model_validate(_get_task_or_404(db, task_id))


# ---------------------------------------------------------------------------
# Public service functions — write operations
# ---------------------------------------------------------------------------


def create_task(db: Session, data: TaskCreate, actor: User) -> TaskResponse:
    """Create a task in PENDING (or COMPLETED when created at 100%).

    Args:
        db: Active SQLAlchemy session.
        data: Validated creation payload.
        actor: Resolved caller, recorded in the audit log.

    Returns:
        The persisted task.

    Raises:
        HTTPException 404: If the project does not exist.
        HTTPException 400: Invalid priority/type, inconsistent dates, unknown
                           assignee or predecessor ids.
    """
    if db.query(Project.id).filter(Project.id == data.project_id).first() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project with ID {data.project_id} not found.",
        )

    values = data.model_dump(exclude={"predecessors"})
    validate_task_fields(values)
    validate_schedule(data.start_date, data.end_date)
    validate_assignee(db, data.assigned_to)
    predecessor_ids = validate_predecessors(db, None, data.predecessors)

    values["status"] = TASK_PENDING
    reconcile_progress(values)

    task = Task(**values)
    if task.status == TASK_COMPLETED:
        task.actual_end_time = utcnow()

    db.add(task)
    try:
        db.flush()
        _replace_edges(db, task.id, predecessor_ids)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("create_task: storage failure for '%s'", data.name)
        raise
    _commit(db, "create_task", task.id)

    logger.info(
        "create_task: created '%s' (id=%d, project_id=%d, predecessors=%s)",
        task.name, task.id, task.project_id, predecessor_ids,
    )
    audit_service.record(
        db, actor, "CREATE", AUDIT_MODULE_TASK, task.id,
        {"name": task.name, "status": task.status, "predecessors": predecessor_ids},
    )
    return get_task(db, task.id)


def update_task(
    db: Session, task_id: int, data: TaskUpdate, actor: User
) -> TaskResponse:
    """Apply a partial field update to a task.

    Fields absent from the payload are left alone. ``predecessors`` replaces
    the whole dependency set. An explicit ``status`` is checked against the
    transition table; a completion implied by ``progress = 100`` is allowed
    from any non-terminal status.

    Raises:
        HTTPException 404: If the task does not exist.
        HTTPException 409: If the task is COMPLETED, or is CANCELLED and the
                           update would change its status.
        HTTPException 400: Invalid field values, illegal transitions, a
                           missing reason, blocked predecessors, or an
                           invalid predecessor set.
    """
    task = _get_task_or_404(db, task_id, lock=True)
    changes = data.model_dump(exclude_unset=True)

    if task.status == TASK_COMPLETED:
        db.rollback()
        logger.warning("update_task: rejected edit of completed task id=%d", task_id)
        audit_service.record(
            db, actor, "UPDATE_DENIED", AUDIT_MODULE_TASK, task_id,
            {"reason": "task is COMPLETED", "fields": sorted(changes)},
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Completed tasks cannot be modified.",
        )

    predecessor_ids = changes.pop("predecessors", None)
    validate_task_fields(changes)
    validate_schedule(
        changes.get("start_date", task.start_date),
        changes.get("end_date", task.end_date),
    )
    if "assigned_to" in changes:
        validate_assignee(db, changes["assigned_to"])

    if changes.get("status") == task.status:
        del changes["status"]
    requested = changes.get("status")
    reconcile_progress(changes)
    target = changes.get("status", task.status)

    if target != task.status:
        if task.status == TASK_CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cancelled tasks cannot change status.",
            )
        reason = (changes.get("status_reason") or "").strip() or None
        _validate_transition(task, target, reason, implied_completion=requested is None)

    if predecessor_ids is not None:
        predecessor_ids = validate_predecessors(db, task_id, predecessor_ids)

    if target != task.status and target in TASK_DEPENDENCY_GATED:
        raise_if_blocked(db, task_id, predecessor_ids)

    now = utcnow()
    if target != task.status:
        _stamp_transition(task, target, now)
    for field, value in changes.items():
        setattr(task, field, value)
    task.updated_at = now

    try:
        if predecessor_ids is not None:
            _replace_edges(db, task_id, predecessor_ids)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("update_task: storage failure for task id=%d", task_id)
        raise
    _commit(db, "update_task", task_id)

    fields = sorted(changes) + (["predecessors"] if predecessor_ids is not None else [])
    logger.info("update_task: id=%d fields=%s", task_id, fields)
    audit_service.record(
        db, actor, "UPDATE", AUDIT_MODULE_TASK, task_id, {"fields": fields}
    )
    return get_task(db, task_id)


def change_status(
    db: Session, task_id: int, data: TaskStatusChange, actor: User
) -> TaskResponse:
    """Move a task along the state machine.

    Checks run in this order: existence, terminal source state, known
    target, legal transition, required reason, dependency gate.

    Raises:
        HTTPException 404: If the task does not exist.
        HTTPException 409: If the task is COMPLETED or CANCELLED.
        HTTPException 400: Unknown or illegal target, missing reason, or
                           ``detail = {"message", "blockers"}`` when
                           predecessors are unfinished.
    """
    task = _get_task_or_404(db, task_id, lock=True)
    target = data.status
    reason = (data.reason or "").strip() or None

    if task.status in TASK_TERMINAL_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Task is {task.status} and can no longer change status.",
        )
    _validate_transition(task, target, reason)
    if target in TASK_DEPENDENCY_GATED:
        raise_if_blocked(db, task_id)

    previous = task.status
    now = utcnow()
    _stamp_transition(task, target, now)
    task.status = target
    if reason is not None:
        task.status_reason = reason
    task.updated_at = now
    _commit(db, "change_status", task_id)

    logger.info("change_status: task id=%d %s -> %s", task_id, previous, target)
    audit_service.record(
        db, actor, "UPDATE_STATUS", AUDIT_MODULE_TASK, task_id,
        {"from": previous, "to": target, "reason": reason},
    )
    return get_task(db, task_id)
