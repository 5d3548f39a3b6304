"""
Task lifecycle router.

Mounts under ``/api/tasks`` (prefix set in ``main.py``).

All endpoints require a valid JWT token (``get_current_user`` dependency);
the caller is recorded in the audit log for every write.

Endpoints
---------
GET  /                — List tasks, optionally for one project.
POST /                — Create a task.
POST /batch           — Patch many tasks at once; COMPLETED ones are skipped.
GET  /{id}            — Task detail with predecessor ids.
PUT  /{id}            — Partial update; 409 when the task is COMPLETED.
POST /{id}/status     — Guarded status transition.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.models.user import User
from tracker.schemas.common import BlockedResponse, ErrorResponse
from tracker.schemas.task import (
    BatchUpdateResponse,
    TaskBatchUpdate,
    TaskCreate,
    TaskResponse,
    TaskStatusChange,
    TaskUpdate,
)
from tracker.services import batch_service, task_service
from tracker.services.auth_service import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tasks"])


# ---------------------------------------------------------------------------
# GET /
# ---------------------------------------------------------------------------


@router.get(
    "/",
    response_model=list[TaskResponse],
    summary="List tasks",
    responses={401: {"description": "Missing or invalid JWT."}},
)
def list_tasks(
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[User, Depends(get_current_user)],
    project_id: Annotated[
        int | None, Query(description="Only tasks of this project.", ge=1)
    ] = None,
) -> list[TaskResponse]:
    return task_service.list_tasks(db, project_id)


# ---------------------------------------------------------------------------
# POST /
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=TaskResponse,
    status_code=201,
    summary="Create task",
    description=(
        "Creates a task in PENDING. A task created with ``progress = 100`` is "
        "stored COMPLETED. ``predecessors`` lists tasks that must be COMPLETED "
        "before this one can start."
    ),
    responses={
        201: {"description": "Task created."},
        400: {"model": ErrorResponse, "description": "Invalid field values or predecessors."},
        401: {"description": "Missing or invalid JWT."},
        404: {"description": "Project not found."},
    },
)
def create_task(
    data: TaskCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> TaskResponse:
    logger.info(
        "POST /tasks project_id=%d name='%s' user=%s",
        data.project_id, data.name, current_user.username,
    )
    return task_service.create_task(db, data, current_user)


# ---------------------------------------------------------------------------
# POST /batch
# ---------------------------------------------------------------------------


@router.post(
    "/batch",
    response_model=BatchUpdateResponse,
    summary="Batch update tasks",
    description=(
        "Applies one field patch to every listed task. COMPLETED tasks are "
        "left untouched and reported in ``skipped``; ids that do not exist "
        "appear in neither list. ``status`` and ``predecessors`` cannot be "
        "batch-edited."
    ),
    responses={
        200: {"description": "Both partitions of the batch."},
        400: {"model": ErrorResponse, "description": "Empty selection or empty patch."},
        401: {"description": "Missing or invalid JWT."},
    },
)
def batch_update(
    data: TaskBatchUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> BatchUpdateResponse:
    """Patch many tasks at once.

    Args:
        data: Target ids and the field patch.
        db: Database session.
        current_user: Caller, recorded in the aggregate audit entry.

    Returns:
        ``updated`` and ``skipped`` id lists in request order.
    """
    logger.info(
        "POST /tasks/batch count=%d user=%s", len(data.task_ids), current_user.username
    )
    return batch_service.batch_update(db, data, current_user)


# ---------------------------------------------------------------------------
# GET /{task_id}
# ---------------------------------------------------------------------------


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Task detail",
    responses={
        401: {"description": "Missing or invalid JWT."},
        404: {"description": "Task not found."},
    },
)
def get_task(
    task_id: int,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[User, Depends(get_current_user)],
) -> TaskResponse:
    return task_service.get_task(db, task_id)


# ---------------------------------------------------------------------------
# PUT /{task_id}
# ---------------------------------------------------------------------------


@router.put(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update task",
    description=(
        "Partially updates a task. Only fields present in the body are "
        "written; ``predecessors`` replaces the whole set. Completed tasks "
        "are read-only."
    ),
    responses={
        200: {"description": "Task updated."},
        400: {"model": BlockedResponse, "description": "Invalid values or transition."},
        401: {"description": "Missing or invalid JWT."},
        404: {"description": "Task not found."},
        409: {"model": ErrorResponse, "description": "Task is COMPLETED."},
    },
)
def update_task(
    task_id: int,
    data: TaskUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> TaskResponse:
    """Apply a partial update to a task.

    Args:
        task_id: Task to modify.
        data: Fields to write.
        db: Database session.
        current_user: Caller, recorded in the audit log.

    Returns:
        The updated task.
    """
    logger.info(
        "PUT /tasks/%d fields=%s user=%s",
        task_id, sorted(data.model_fields_set), current_user.username,
    )
    return task_service.update_task(db, task_id, data, current_user)


# ---------------------------------------------------------------------------
# POST /{task_id}/status
# ---------------------------------------------------------------------------


@router.post(
    "/{task_id}/status",
    response_model=TaskResponse,
    summary="Change task status",
    description=(
        "Moves the task along its lifecycle. Starting a task requires every "
        "predecessor to be COMPLETED; pausing and cancelling require a reason."
    ),
    responses={
        200: {"description": "Transition applied."},
        400: {
            "model": BlockedResponse,
            "description": "Illegal transition, missing reason, or unfinished predecessors.",
        },
        401: {"description": "Missing or invalid JWT."},
        404: {"description": "Task not found."},
        409: {"model": ErrorResponse, "description": "Task is COMPLETED or CANCELLED."},
    },
)
def change_status(
    task_id: int,
    data: TaskStatusChange,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> TaskResponse:
    logger.info(
        "POST /tasks/%d/status -> %s user=%s", task_id, data.status, current_user.username
    )
    return task_service.change_status(db, task_id, data, current_user)
