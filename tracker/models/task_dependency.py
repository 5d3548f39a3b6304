"""TaskDependency model — finish-to-start edge between two tasks."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tracker.database import Base


class TaskDependency(Base):
    """Directed edge: ``task_id`` cannot start until ``predecessor_id`` is done.

    The edge set of a task is always replaced as a whole, never patched.

    Attributes:
        id: Primary key.
        task_id: FK to the dependent Task.
        predecessor_id: FK to the Task that must be completed first.
        type: Dependency semantics, always "FS" (finish-to-start).
        created_at: Record creation timestamp.
    """

    __tablename__ = "task_dependency"
    __table_args__ = (
        CheckConstraint("task_id <> predecessor_id", name="ck_task_dependency_not_self"),
        UniqueConstraint("task_id", "predecessor_id", name="uq_task_dependency_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(
        Integer, ForeignKey("task.id", ondelete="CASCADE"), nullable=False, index=True
    )
    predecessor_id = Column(
        Integer, ForeignKey("task.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(10), default="FS", nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    task = relationship(
        "Task",
        foreign_keys=[task_id],
        back_populates="predecessor_edges",
        lazy="select",
    )
    predecessor = relationship("Task", foreign_keys=[predecessor_id], lazy="select")
