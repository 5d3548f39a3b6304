"""
Milestone template version router.

Mounts under ``/api/milestone-versions`` (prefix set in ``main.py``).

Every endpoint requires the SUPER_ADMIN or SYS_ADMIN role
(``require_role``); template management is an administrative concern.

Endpoints
---------
GET  /               — All versions, newest first (no content).
GET  /active         — The active version with its content.
GET  /{id}           — One version with its parsed content tree.
POST /               — Save a new, inactive version.
POST /{id}/publish   — Make a version the single active one.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.models.user import User
from tracker.schemas.common import ErrorResponse
from tracker.schemas.milestone import (
    MilestoneVersionCreate,
    MilestoneVersionCreated,
    MilestoneVersionDetail,
    MilestoneVersionSummary,
)
from tracker.services import milestone_version_service
from tracker.services.auth_service import require_role
from tracker.utils.constants import ADMIN_ROLES

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Milestone Versions"])

_ADMIN_RESPONSES = {
    401: {"description": "Missing or invalid JWT."},
    403: {"model": ErrorResponse, "description": "Requires SUPER_ADMIN or SYS_ADMIN."},
}


@router.get(
    "/",
    response_model=list[MilestoneVersionSummary],
    summary="List template versions",
    responses=_ADMIN_RESPONSES,
)
def list_versions(
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[User, Depends(require_role(*ADMIN_ROLES))],
) -> list[MilestoneVersionSummary]:
    return [
        MilestoneVersionSummary.model_validate(version)
        for version in milestone_version_service.list_versions(db)
    ]


@router.get(
    "/active",
    response_model=MilestoneVersionDetail,
    summary="Active template version",
    description="Returns the version new projects are seeded from.",
    responses={**_ADMIN_RESPONSES, 404: {"description": "Nothing published yet."}},
)
def get_active_version(
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[User, Depends(require_role(*ADMIN_ROLES))],
) -> MilestoneVersionDetail:
    return milestone_version_service.get_active_detail(db)


@router.get(
    "/{version_id}",
    response_model=MilestoneVersionDetail,
    summary="Template version detail",
    responses={**_ADMIN_RESPONSES, 404: {"description": "Version not found."}},
)
def get_version(
    version_id: int,
    db: Annotated[Session, Depends(get_db)],
    _current_user: Annotated[User, Depends(require_role(*ADMIN_ROLES))],
) -> MilestoneVersionDetail:
    return milestone_version_service.get_version_detail(db, version_id)


@router.post(
    "/",
    response_model=MilestoneVersionCreated,
    status_code=201,
    summary="Save template version",
    description=(
        "Stores the submitted phase/process tree as a new version numbered "
        "one above the current maximum. New versions are inactive until "
        "published."
    ),
    responses={
        **_ADMIN_RESPONSES,
        201: {"description": "Version saved."},
        409: {"model": ErrorResponse, "description": "Concurrent save took the number."},
    },
)
def create_version(
    data: MilestoneVersionCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(require_role(*ADMIN_ROLES))],
) -> MilestoneVersionCreated:
    """Save a snapshot of the template editor.

    Args:
        data: Version label and content tree.
        db: Database session.
        current_user: Administrator saving the version.

    Returns:
        The new version's id and number (HTTP 201).
    """
    logger.info(
        "POST /milestone-versions name='%s' phases=%d user=%s",
        data.version_name, len(data.content), current_user.username,
    )
    return milestone_version_service.create_version(db, data, current_user)


@router.post(
    "/{version_id}/publish",
    response_model=MilestoneVersionSummary,
    summary="Publish template version",
    description="Deactivates every other version and activates this one.",
    responses={**_ADMIN_RESPONSES, 404: {"description": "Version not found."}},
)
def publish_version(
    version_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(require_role(*ADMIN_ROLES))],
) -> MilestoneVersionSummary:
    logger.info(
        "POST /milestone-versions/%d/publish user=%s", version_id, current_user.username
    )
    return milestone_version_service.publish(db, version_id, current_user)
