"""
Pydantic v2 schemas for milestone template versions and project milestones.

Domain context
--------------
A template version stores a two-level tree:

1. Phase nodes — ordered, each with a name and a list of processes.
2. Process nodes — the unit that becomes one ``ProjectMilestone`` row.

The tree is stored as JSON text; ``PhaseNode``/``ProcessNode`` are the typed
boundary it is parsed into. Legacy data carries document lists as
comma-separated strings and flags as 0/1 integers, so the node models accept
both shapes and normalise them.
"""

from __future__ import annotations

import datetime
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def coerce_doc_list(value: Any) -> list[str]:
    """Normalise a document list from JSON text, CSV text, a list, or None."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                value = json.loads(text)
            except ValueError:
                value = text.strip("[]").split(",")
        else:
            value = text.split(",")
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError("expected a list of document names")


def _coerce_node_id(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Template tree
# ---------------------------------------------------------------------------


class ProcessNode(BaseModel):
    """One process inside a phase; flattened into one project milestone."""

    id: str | None = None
    name: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    is_required: bool = True
    input_docs: list[str] = Field(default_factory=list)
    output_docs: list[str] = Field(default_factory=list)
    importance: int = Field(default=3, ge=1, le=5)

    @field_validator("id", mode="before")
    @classmethod
    def node_id_as_text(cls, value: Any) -> str | None:
        return _coerce_node_id(value)

    @field_validator("input_docs", "output_docs", mode="before")
    @classmethod
    def docs_as_list(cls, value: Any) -> list[str]:
        return coerce_doc_list(value)

    @field_validator("is_required", mode="before")
    @classmethod
    def required_default(cls, value: Any) -> Any:
        return True if value is None else value


class PhaseNode(BaseModel):
    """An ordered group of processes."""

    id: str | None = None
    name: str = Field(..., min_length=1, max_length=100)
    children: list[ProcessNode] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def node_id_as_text(cls, value: Any) -> str | None:
        return _coerce_node_id(value)

    @field_validator("children", mode="before")
    @classmethod
    def children_default(cls, value: Any) -> Any:
        return [] if value is None else value


# ---------------------------------------------------------------------------
# Template versions
# ---------------------------------------------------------------------------


class MilestoneVersionCreate(BaseModel):
    """Payload for ``POST /milestone-versions``: a snapshot of an edit session."""

    version_name: str = Field(..., min_length=1, max_length=200)
    content: list[PhaseNode] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "version_name": "2026 delivery plan",
                "content": [
                    {
                        "id": "phase-1",
                        "name": "Kick-off",
                        "children": [
                            {
                                "id": "proc-1",
                                "name": "Collect contract documents",
                                "description": "Feasibility study and contract",
                                "is_required": True,
                                "input_docs": ["Feasibility study", "Contract"],
                                "output_docs": [],
                                "importance": 5,
                            }
                        ],
                    }
                ],
            }
        }
    )


class MilestoneVersionCreated(BaseModel):
    id: int
    version_number: int


class MilestoneVersionSummary(BaseModel):
    """Row of ``GET /milestone-versions`` (no content tree)."""

    id: int
    version_name: str
    version_number: int
    is_active: bool
    created_by: int | None
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class MilestoneVersionDetail(MilestoneVersionSummary):
    """A version with its parsed content tree."""

    content: list[PhaseNode] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Project milestones
# ---------------------------------------------------------------------------


class ProjectMilestoneUpdate(BaseModel):
    """Partial update for ``PUT /milestones/{id}``."""

    status: str | None = Field(
        default=None,
        description="PENDING, IN_PROGRESS, COMPLETED, SKIPPED or PAUSED.",
    )
    actual_start_date: datetime.date | None = None
    actual_end_date: datetime.date | None = None
    remarks: str | None = None
    output_files: list[str] | None = None

    @field_validator("status")
    @classmethod
    def status_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("output_files", mode="before")
    @classmethod
    def files_as_list(cls, value: Any) -> list[str] | None:
        return None if value is None else coerce_doc_list(value)

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "status": "COMPLETED",
                "actual_start_date": "2026-03-02",
                "actual_end_date": "2026-03-09",
                "output_files": ["uploads/kickoff-minutes.pdf"],
            }
        },
    )


class ProjectMilestoneResponse(BaseModel):
    """One materialized milestone of a project."""

    id: int
    project_id: int
    template_id: int | None
    version_id: int | None
    phase: str | None
    name: str
    description: str | None
    is_required: bool
    input_docs: list[str]
    output_docs: list[str]
    order_index: int
    status: str
    actual_start_date: datetime.date | None
    actual_end_date: datetime.date | None
    remarks: str | None
    output_files: list[str]
    updated_at: datetime.datetime

    @field_validator("input_docs", "output_docs", "output_files", mode="before")
    @classmethod
    def stored_json_as_list(cls, value: Any) -> list[str]:
        return coerce_doc_list(value)

    model_config = ConfigDict(from_attributes=True)
