"""MilestoneTemplate model — flat legacy milestone template table."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from tracker.database import Base


class MilestoneTemplate(Base):
    """One process row of the legacy, pre-versioning milestone template.

    Used by the provisioner only while no template version has been
    published, and by ``bootstrap_from_legacy`` to build version 1.

    Attributes:
        id: Primary key (copied to ``ProjectMilestone.template_id``).
        phase: Phase label.
        name: Process name.
        description: What the process involves.
        is_required: Whether the process may be skipped.
        order_index: Position in the flat template, unique.
        category: Optional grouping label.
        direction: Optional delivery direction label.
        importance: Weight 1–5.
        input_docs: Comma-separated input document names.
        output_docs: Comma-separated output document names.
        created_at: Record creation timestamp.
    """

    __tablename__ = "milestone_template"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phase = Column(String(100), nullable=False)
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, default=True, nullable=False)
    order_index = Column(Integer, unique=True, nullable=False)
    category = Column(String(100), nullable=True)
    direction = Column(String(100), nullable=True)
    importance = Column(Integer, default=3, nullable=False)
    input_docs = Column(Text, nullable=True)
    output_docs = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
