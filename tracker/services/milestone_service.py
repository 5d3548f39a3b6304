"""
Project milestone provisioner.

A project's milestone plan is materialised lazily: the first read of
``/projects/{id}/milestones`` copies the current template into
``project_milestone`` rows, and later reads return those rows as they have
evolved since.

Design notes
------------
- The template source is chosen once per provisioning: the active version
  when one is published, otherwise the flat legacy template table. Both
  sources implement ``TemplateSource`` and yield ``MilestoneDraft`` objects,
  so the insert path does not care where the plan came from.
- Version trees are flattened phase by phase, process by process, with a
  running ``order_index`` from 1. Legacy rows keep their own
  ``order_index`` and record ``template_id``.
- Concurrent first reads race on the ``uq_project_milestone_order``
  constraint. The loser rolls back and re-reads the winner's rows, so a
  project never ends up with two plans.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.models.milestone_template import MilestoneTemplate
from tracker.models.milestone_version import MilestoneVersion
from tracker.models.project import Project
from tracker.models.project_milestone import ProjectMilestone
from tracker.models.user import User
from tracker.schemas.milestone import (
    PhaseNode,
    ProjectMilestoneResponse,
    ProjectMilestoneUpdate,
    coerce_doc_list,
)
from tracker.services import audit_service
from tracker.services.milestone_version_service import get_active, parse_content
from tracker.utils.constants import AUDIT_MODULE_MILESTONE, MILESTONE_STATUSES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Drafts and template sources
# ---------------------------------------------------------------------------


@dataclass
class MilestoneDraft:
    """A project milestone row before it is bound to a project.

    Attributes:
        name: Process name.
        order_index: Position in the flattened plan.
        phase: Owning phase name.
        description: Process description.
        is_required: Whether the process may be skipped.
        input_docs: Input document names.
        output_docs: Output document names.
        template_id: Legacy template row the draft came from.
        version_id: Template version the draft came from.
    """

    name: str
    order_index: int
    phase: str | None = None
    description: str | None = None
    is_required: bool = True
    input_docs: list[str] = field(default_factory=list)
    output_docs: list[str] = field(default_factory=list)
    template_id: int | None = None
    version_id: int | None = None

    def to_row(self, project_id: int) -> ProjectMilestone:
        return ProjectMilestone(
            project_id=project_id,
            template_id=self.template_id,
            version_id=self.version_id,
            phase=self.phase,
            name=self.name,
            description=self.description,
            is_required=self.is_required,
            input_docs=json.dumps(self.input_docs, ensure_ascii=False),
            output_docs=json.dumps(self.output_docs, ensure_ascii=False),
            order_index=self.order_index,
            status="PENDING",
            output_files="[]",
        )


def flatten_version_content(
    tree: list[PhaseNode], version_id: int | None = None
) -> list[MilestoneDraft]:
    """Flatten phases then processes into drafts numbered from 1."""
    drafts: list[MilestoneDraft] = []
    for phase in tree:
        for process in phase.children:
            drafts.append(
                MilestoneDraft(
                    name=process.name,
                    order_index=len(drafts) + 1,
                    phase=phase.name,
                    description=process.description,
                    is_required=process.is_required,
                    input_docs=list(process.input_docs),
                    output_docs=list(process.output_docs),
                    version_id=version_id,
                )
            )
    return drafts


class TemplateSource(ABC):
    """Where a new project's milestone plan is copied from."""

    label: str = "unknown"

    @abstractmethod
    def drafts(self, db: Session) -> list[MilestoneDraft]:
        """Return the plan in ``order_index`` order."""


class ActiveVersionSource(TemplateSource):
    """The published template version."""

    label = "version"

    def __init__(self, version: MilestoneVersion) -> None:
        self.version = version

    def drafts(self, db: Session) -> list[MilestoneDraft]:
        tree = parse_content(self.version.content, self.version.id)
        return flatten_version_content(tree, self.version.id)


class LegacyTemplateSource(TemplateSource):
    """The flat pre-versioning template table."""

    label = "legacy"

    def drafts(self, db: Session) -> list[MilestoneDraft]:
        templates = (
            db.query(MilestoneTemplate)
            .order_by(MilestoneTemplate.order_index.asc())
            .all()
        )
        return [
            MilestoneDraft(
                name=template.name,
                order_index=template.order_index,
                phase=template.phase,
                description=template.description,
                is_required=template.is_required,
                input_docs=coerce_doc_list(template.input_docs),
                output_docs=coerce_doc_list(template.output_docs),
                template_id=template.id,
            )
            for template in templates
        ]


def select_template_source(db: Session) -> TemplateSource:
    """Return the active version as source, or the legacy table when none is published."""
    version = get_active(db)
    if version is not None:
        return ActiveVersionSource(version)
    return LegacyTemplateSource()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_rows(db: Session, project_id: int) -> list[ProjectMilestone]:
    return (
        db.query(ProjectMilestone)
        .filter(ProjectMilestone.project_id == project_id)
        .order_by(ProjectMilestone.order_index.asc(), ProjectMilestone.id.asc())
        .all()
    )


def _provision(db: Session, project_id: int) -> None:
    """Insert the project's plan from the current template source."""
    source = select_template_source(db)
    drafts = source.drafts(db)
    if not drafts:
        logger.info(
            "provision: no %s template available for project id=%d", source.label, project_id
        )
        return

    db.add_all(draft.to_row(project_id) for draft in drafts)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "provision: project id=%d was provisioned concurrently, re-reading", project_id
        )
        return
    except SQLAlchemyError:
        db.rollback()
        logger.exception("provision: storage failure for project id=%d", project_id)
        raise

    logger.info(
        "provision: project id=%d seeded with %d milestones from %s template",
        project_id, len(drafts), source.label,
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def get_project_milestones(db: Session, project_id: int) -> list[ProjectMilestoneResponse]:
    """Return a project's milestones, provisioning them on first read.

    Raises:
        HTTPException 404: If the project does not exist.
    """
    if db.get(Project, project_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project with ID {project_id} not found.",
        )

    rows = _load_rows(db, project_id)
    if not rows:
        _provision(db, project_id)
        rows = _load_rows(db, project_id)

    logger.debug("get_project_milestones: project_id=%d count=%d", project_id, len(rows))
    return [ProjectMilestoneResponse.model_validate(row) for row in rows]


def update_project_milestone(
    db: Session, milestone_id: int, data: ProjectMilestoneUpdate, actor: User
) -> ProjectMilestoneResponse:
    """Apply a partial tracking update to one project milestone.

    Raises:
        HTTPException 404: If the milestone does not exist.
        HTTPException 400: Unknown status, or end date before start date.
    """
    milestone: ProjectMilestone | None = db.get(ProjectMilestone, milestone_id)
    if milestone is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Milestone with ID {milestone_id} not found.",
        )

    update_data = data.model_dump(exclude_unset=True)
    new_status = update_data.get("status")
    if new_status is not None and new_status not in MILESTONE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status '{new_status}'. Valid values: {MILESTONE_STATUSES}.",
        )

    start = update_data.get("actual_start_date", milestone.actual_start_date)
    end = update_data.get("actual_end_date", milestone.actual_end_date)
    if start is not None and end is not None and end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="actual_end_date cannot be earlier than actual_start_date.",
        )

    if "output_files" in update_data:
        update_data["output_files"] = json.dumps(
            update_data["output_files"] or [], ensure_ascii=False
        )
    for field_name, value in update_data.items():
        setattr(milestone, field_name, value)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("update_project_milestone: storage failure for id=%d", milestone_id)
        raise
    db.refresh(milestone)

    logger.info(
        "update_project_milestone: id=%d fields=%s", milestone_id, sorted(update_data)
    )
    audit_service.record(
        db, actor, "UPDATE", AUDIT_MODULE_MILESTONE, milestone_id,
        {"project_id": milestone.project_id, "fields": sorted(update_data)},
    )
    return ProjectMilestoneResponse.model_validate(milestone)
