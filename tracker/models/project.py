"""Project model — owner of tasks and materialized milestones."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tracker.database import Base


class Project(Base):
    """A tracked project.

    Project administration (members, transfer, archival) lives outside this
    service; only the columns the task and milestone core needs are mapped.
    """

    __tablename__ = "project"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    tasks = relationship("Task", back_populates="project", lazy="select")
    milestones = relationship(
        "ProjectMilestone",
        back_populates="project",
        order_by="ProjectMilestone.order_index",
        lazy="select",
        cascade="all, delete-orphan",
    )
