"""
Project milestone router.

Mounted under ``/api`` (prefix set in ``main.py``) because its two paths
live under different resources.

Endpoints
---------
GET /projects/{id}/milestones — The project's milestone plan; the first read
                                copies it from the current template.
PUT /milestones/{id}          — Update tracking fields of one milestone.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.models.user import User
from tracker.schemas.common import ErrorResponse
from tracker.schemas.milestone import ProjectMilestoneResponse, ProjectMilestoneUpdate
from tracker.services import milestone_service
from tracker.services.auth_service import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Milestones"])


@router.get(
    "/projects/{project_id}/milestones",
    response_model=list[ProjectMilestoneResponse],
    summary="Project milestones",
    description=(
        "Returns the project's milestones ordered by ``order_index``. On the "
        "first read they are provisioned from the active template version, "
        "or from the legacy template when no version is published."
    ),
    responses={
        401: {"description": "Missing or invalid JWT."},
        404: {"description": "Project not found."},
    },
)
def get_project_milestones(
    project_id: int,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[User, Depends(get_current_user)],
) -> list[ProjectMilestoneResponse]:
    return milestone_service.get_project_milestones(db, project_id)


@router.put(
    "/milestones/{milestone_id}",
    response_model=ProjectMilestoneResponse,
    summary="Update project milestone",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid status or dates."},
        401: {"description": "Missing or invalid JWT."},
        404: {"description": "Milestone not found."},
    },
)
def update_milestone(
    milestone_id: int,
    data: ProjectMilestoneUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> ProjectMilestoneResponse:
    logger.info(
        "PUT /milestones/%d fields=%s user=%s",
        milestone_id, sorted(data.model_fields_set), current_user.username,
    )
    return milestone_service.update_project_milestone(db, milestone_id, data, current_user)
