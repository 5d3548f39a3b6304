"""
Pydantic v2 schemas for the task lifecycle endpoints.

These models define the JSON shapes consumed and returned by
``tracker/routers/tasks.py``. Enumerated values (priority, type, status) are
kept as plain strings here and validated against ``tracker.utils.constants``
in the service layer, which answers with a 400 naming the valid values.

Update payloads distinguish "field omitted" from "field sent": services read
them with ``model_dump(exclude_unset=True)``, so ``{"predecessors": []}``
clears the dependency set while a payload without ``predecessors`` leaves it
alone.
"""

from __future__ import annotations

import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Columns declared NOT NULL on ``task``; an explicit null for them is a
# malformed payload rather than a request to clear the value.
_NON_NULLABLE_FIELDS = ("name", "priority", "type", "progress", "status")


def _reject_explicit_null(value):
    if value is None:
        raise ValueError("must not be null")
    return value


# ---------------------------------------------------------------------------
# Input schemas — write operations
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Payload for ``POST /tasks``.

    New tasks always start PENDING; a task created at ``progress = 100`` is
    stored COMPLETED by the progress/status coupling rule.
    """

    project_id: int = Field(..., ge=1, description="Owning project.")
    name: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    phase: str | None = Field(default=None, max_length=100)
    priority: str = Field(default="MEDIUM", description="HIGH, MEDIUM or LOW.")
    type: str = Field(default="TASK", description="TASK, MILESTONE or ISSUE.")
    progress: int = Field(default=0, ge=0, le=100)
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    duration: int | None = Field(default=None, ge=0, description="Days.")
    function_id: int | None = Field(default=None, ge=1)
    assigned_to: int | None = Field(default=None, ge=1)
    predecessors: list[int] = Field(
        default_factory=list,
        description="IDs of tasks that must be COMPLETED before this one starts.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "project_id": 1,
                "name": "Requirements survey",
                "priority": "HIGH",
                "type": "TASK",
                "start_date": "2026-03-02",
                "duration": 10,
                "predecessors": [4],
            }
        }
    )


class TaskUpdate(BaseModel):
    """Partial field update for ``PUT /tasks/{id}``.

    Rejected with 409 when the task is COMPLETED. An explicit ``status``
    change goes through the same transition rules as ``POST /status``;
    ``status_reason`` carries the reason for PAUSED/CANCELLED.
    """

    name: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    phase: str | None = Field(default=None, max_length=100)
    priority: str | None = None
    type: str | None = None
    status: str | None = None
    status_reason: str | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    duration: int | None = Field(default=None, ge=0)
    function_id: int | None = Field(default=None, ge=1)
    assigned_to: int | None = Field(default=None, ge=1)
    predecessors: list[int] | None = Field(
        default=None,
        description="Full replacement of the predecessor set; [] clears it.",
    )

    @field_validator(*_NON_NULLABLE_FIELDS)
    @classmethod
    def not_null(cls, value):
        return _reject_explicit_null(value)

    @field_validator("predecessors")
    @classmethod
    def predecessors_not_null(cls, value: list[int] | None) -> list[int]:
        if value is None:
            raise ValueError("send [] to clear predecessors")
        return value

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {"progress": 60, "priority": "HIGH", "predecessors": [3, 5]}
        },
    )


class TaskStatusChange(BaseModel):
    """Body of the guarded transition endpoint ``POST /tasks/{id}/status``."""

    status: str = Field(..., description="Target status.")
    reason: str | None = Field(
        default=None,
        max_length=2000,
        description="Required when pausing or cancelling.",
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "PAUSED", "reason": "Waiting on vendor"}}
    )


class TaskBatchFields(BaseModel):
    """Fields a batch update may patch.

    ``status`` and ``predecessors`` are absent on purpose: status changes need
    per-task dependency gating and edge sets are per-task, so both go through
    their single-task operations.
    """

    name: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    phase: str | None = Field(default=None, max_length=100)
    priority: str | None = None
    type: str | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    duration: int | None = Field(default=None, ge=0)
    function_id: int | None = Field(default=None, ge=1)
    assigned_to: int | None = Field(default=None, ge=1)

    @field_validator("name", "priority", "type", "progress")
    @classmethod
    def not_null(cls, value):
        return _reject_explicit_null(value)

    model_config = ConfigDict(extra="forbid")


class TaskBatchUpdate(BaseModel):
    """Body of ``POST /tasks/batch``; accepts ``taskIds`` as an alias."""

    task_ids: list[int] = Field(
        ...,
        validation_alias=AliasChoices("task_ids", "taskIds"),
        description="Tasks to patch.",
    )
    updates: TaskBatchFields

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"task_ids": [12, 13, 14], "updates": {"priority": "HIGH"}}
        }
    )


# ---------------------------------------------------------------------------
# Output schemas
# ---------------------------------------------------------------------------


class TaskResponse(BaseModel):
    """Full task representation including its predecessor ids."""

    id: int
    project_id: int
    function_id: int | None
    name: str
    description: str | None
    phase: str | None
    assigned_to: int | None
    priority: str
    status: str
    progress: int
    start_date: datetime.date | None
    end_date: datetime.date | None
    duration: int | None
    type: str
    status_reason: str | None
    paused_at: datetime.datetime | None
    actual_start_time: datetime.datetime | None
    actual_end_time: datetime.datetime | None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    predecessors: list[int] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class BatchUpdateResponse(BaseModel):
    """Both partitions of a batch update, always present.

    Attributes:
        message: Summary line.
        updated: IDs that received the patch.
        skipped: IDs left untouched because they are COMPLETED.
    """

    message: str
    updated: list[int]
    skipped: list[int]
