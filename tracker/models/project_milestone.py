"""ProjectMilestone model — per-project materialized milestone process."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tracker.database import Base


class ProjectMilestone(Base):
    """One process of a project's milestone plan.

    Rows are copied from the active template version (or the legacy table)
    the first time a project's milestones are read, and evolve independently
    afterwards. ``uq_project_milestone_order`` makes that first read
    idempotent under concurrency: a second provisioning attempt for the same
    project collides on ``(project_id, order_index)``.

    Attributes:
        id: Primary key.
        project_id: FK to Project.
        template_id: Source legacy template row, when provisioned from it.
        version_id: Source template version, when provisioned from one.
        phase: Phase name copied from the template.
        name: Process name copied from the template.
        description: Process description.
        is_required: Whether the process may be skipped.
        input_docs: JSON list of input document names.
        output_docs: JSON list of output document names.
        order_index: Position across the whole flattened plan, from 1.
        status: One of ``constants.MILESTONE_STATUSES``.
        actual_start_date: Actual start date.
        actual_end_date: Actual end date.
        remarks: Free-text notes.
        output_files: JSON list of delivered file references.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "project_milestone"
    __table_args__ = (
        UniqueConstraint("project_id", "order_index", name="uq_project_milestone_order"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    template_id = Column(Integer, ForeignKey("milestone_template.id"), nullable=True)
    version_id = Column(Integer, ForeignKey("milestone_version.id"), nullable=True)
    phase = Column(String(100), nullable=True)
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, default=True, nullable=False)
    input_docs = Column(Text, nullable=True)
    output_docs = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    # "PENDING", "IN_PROGRESS", "COMPLETED", "SKIPPED", "PAUSED"
    actual_start_date = Column(Date, nullable=True)
    actual_end_date = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)
    output_files = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="milestones", lazy="select")
