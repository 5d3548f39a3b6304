"""
Milestone template versioning store.

Template edits are saved as numbered, immutable snapshots of the phase /
process tree. Exactly one snapshot is active; the provisioner seeds new
projects from it.

Design notes
------------
- ``version_number`` is ``max + 1`` read inside the inserting transaction.
  Two concurrent creators can read the same max; the UNIQUE constraint on
  the column rejects the second insert, which surfaces as 409.
- ``publish`` locks every version row, clears ``is_active`` everywhere and
  sets it on the target in one transaction. The partial unique index
  ``uq_milestone_version_single_active`` rejects any interleaving that
  would leave two active rows.
- Stored content is parsed through ``TypeAdapter(list[PhaseNode])``. A
  row whose JSON does not parse degrades to an empty tree and a warning, so
  one corrupt snapshot cannot break version listings or provisioning.
"""

from __future__ import annotations

import json
import logging

from fastapi import HTTPException, status
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.models.milestone_template import MilestoneTemplate
from tracker.models.milestone_version import MilestoneVersion
from tracker.models.user import User
from tracker.schemas.milestone import (
    MilestoneVersionCreate,
    MilestoneVersionCreated,
    MilestoneVersionDetail,
    MilestoneVersionSummary,
    PhaseNode,
    ProcessNode,
)
from tracker.services import audit_service
from tracker.utils.constants import AUDIT_MODULE_MILESTONE

logger = logging.getLogger(__name__)

_CONTENT_ADAPTER = TypeAdapter(list[PhaseNode])

INITIAL_VERSION_NAME = "Initial Version"


# ---------------------------------------------------------------------------
# Content (de)serialisation
# ---------------------------------------------------------------------------


def parse_content(raw: str | None, version_id: int | None = None) -> list[PhaseNode]:
    """Parse stored version content; malformed content yields ``[]``."""
    if not raw:
        return []
    try:
        return _CONTENT_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "parse_content: version id=%s has unreadable content (%d errors); "
            "treating it as empty",
            version_id, exc.error_count(),
        )
        return []


def dump_content(tree: list[PhaseNode]) -> str:
    """Serialise a content tree to the JSON text stored on a version."""
    return json.dumps(
        [phase.model_dump() for phase in tree], ensure_ascii=False
    )


def _count_processes(tree: list[PhaseNode]) -> int:
    return sum(len(phase.children) for phase in tree)


def _get_version_or_404(db: Session, version_id: int) -> MilestoneVersion:
    version: MilestoneVersion | None = db.get(MilestoneVersion, version_id)
    if version is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Milestone version with ID {version_id} not found.",
        )
    return version


def _next_version_number(db: Session) -> int:
    current = db.query(func.max(MilestoneVersion.version_number)).scalar()
    return (current or 0) + 1


def _to_detail(version: MilestoneVersion) -> MilestoneVersionDetail:
    summary = MilestoneVersionSummary.model_validate(version)
    return MilestoneVersionDetail(
        **summary.model_dump(), content=parse_content(version.content, version.id)
    )


# ---------------------------------------------------------------------------
# Public service functions — read operations
# ---------------------------------------------------------------------------


def list_versions(db: Session) -> list[MilestoneVersion]:
    """Return every version, newest number first, without content."""
    versions = (
        db.query(MilestoneVersion)
        .order_by(MilestoneVersion.version_number.desc())
        .all()
    )
    logger.debug("list_versions: count=%d", len(versions))
    return versions


def get_active(db: Session) -> MilestoneVersion | None:
    """Return the active version, or ``None`` when nothing is published."""
    return (
        db.query(MilestoneVersion)
        .filter(MilestoneVersion.is_active.is_(True))
        .first()
    )


def get_active_detail(db: Session) -> MilestoneVersionDetail:
    """Return the active version with its content.

    Raises:
        HTTPException 404: If no version has been published.
    """
    version = get_active(db)
    if version is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No milestone version has been published.",
        )
    return _to_detail(version)


def get_version_detail(db: Session, version_id: int) -> MilestoneVersionDetail:
    """Return one version with its parsed content tree.

    Raises:
        HTTPException 404: If the version does not exist.
    """
    return _to_detail(_get_version_or_404(db, version_id))


# ---------------------------------------------------------------------------
# Public service functions — write operations
# ---------------------------------------------------------------------------


def create_version(
    db: Session, data: MilestoneVersionCreate, actor: User | None
) -> MilestoneVersionCreated:
    """Store a new, inactive snapshot numbered one above the current maximum.

    Raises:
        HTTPException 409: If a concurrent request took the same number.
    """
    version = MilestoneVersion(
        version_name=data.version_name,
        version_number=_next_version_number(db),
        content=dump_content(data.content),
        is_active=False,
        created_by=actor.id if actor is not None else None,
    )
    db.add(version)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "create_version: version number %d taken concurrently", version.version_number
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another version was saved at the same time. Please retry.",
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("create_version: storage failure for '%s'", data.version_name)
        raise
    db.refresh(version)

    logger.info(
        "create_version: saved '%s' as v%d (id=%d, phases=%d, processes=%d)",
        version.version_name, version.version_number, version.id,
        len(data.content), _count_processes(data.content),
    )
    audit_service.record(
        db, actor, "CREATE_VERSION", AUDIT_MODULE_MILESTONE, version.id,
        {"version_number": version.version_number, "version_name": version.version_name},
    )
    return MilestoneVersionCreated(id=version.id, version_number=version.version_number)


def publish(db: Session, version_id: int, actor: User | None) -> MilestoneVersionSummary:
    """Make ``version_id`` the single active version.

    Raises:
        HTTPException 404: If the version does not exist.
    """
    _get_version_or_404(db, version_id)

    try:
        db.query(MilestoneVersion.id).order_by(MilestoneVersion.id).with_for_update().all()
        db.query(MilestoneVersion).filter(MilestoneVersion.is_active.is_(True)).update(
            {"is_active": False}, synchronize_session=False
        )
        db.query(MilestoneVersion).filter(MilestoneVersion.id == version_id).update(
            {"is_active": True}, synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("publish: storage failure for version id=%d", version_id)
        raise

    version = _get_version_or_404(db, version_id)
    logger.info("publish: v%d (id=%d) is now active", version.version_number, version_id)
    audit_service.record(
        db, actor, "PUBLISH_VERSION", AUDIT_MODULE_MILESTONE, version_id,
        {"version_number": version.version_number},
    )
    return MilestoneVersionSummary.model_validate(version)


def bootstrap_from_legacy(db: Session, actor: User | None = None) -> MilestoneVersion | None:
    """Build and publish version 1 from the legacy template table.

    Does nothing when a version already exists or the legacy table is empty.
    Phases keep the order of their first process in the flat table.

    Returns:
        The published version, or ``None`` when nothing was done.
    """
    if db.query(MilestoneVersion.id).first() is not None:
        logger.info("bootstrap_from_legacy: versions already exist, skipping")
        return None

    templates = (
        db.query(MilestoneTemplate).order_by(MilestoneTemplate.order_index.asc()).all()
    )
    if not templates:
        logger.info("bootstrap_from_legacy: no legacy templates, skipping")
        return None

    phases: dict[str, PhaseNode] = {}
    for template in templates:
        phase = phases.get(template.phase)
        if phase is None:
            phase = PhaseNode(id=f"phase-{len(phases) + 1}", name=template.phase)
            phases[template.phase] = phase
        phase.children.append(
            ProcessNode(
                id=f"proc-{template.id}",
                name=template.name,
                description=template.description,
                is_required=template.is_required,
                input_docs=template.input_docs,
                output_docs=template.output_docs,
                importance=template.importance,
            )
        )

    created = create_version(
        db,
        MilestoneVersionCreate(version_name=INITIAL_VERSION_NAME, content=list(phases.values())),
        actor,
    )
    publish(db, created.id, actor)
    logger.info(
        "bootstrap_from_legacy: built v%d from %d legacy rows in %d phases",
        created.version_number, len(templates), len(phases),
    )
    return db.get(MilestoneVersion, created.id)
