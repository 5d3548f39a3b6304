"""Task model — unit of tracked work with a status lifecycle."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tracker.database import Base


class Task(Base):
    """Task, milestone marker or issue inside a project.

    The completion invariant ``status = 'COMPLETED' <=> progress = 100`` is
    enforced by ``ck_task_completion_consistency`` so that no writer, not
    even a raw SQL one, can persist a half-completed row. The service layer
    reconciles the two fields before every write so the constraint only
    fires on bugs.

    Attributes:
        id: Primary key.
        project_id: FK to Project.
        function_id: Optional reference to a function/module node.
        name: Short title.
        description: Free-text description.
        phase: Project phase label the task belongs to.
        assigned_to: FK to the responsible user.
        priority: "HIGH", "MEDIUM" or "LOW".
        status: One of ``constants.TASK_STATUSES``.
        progress: Completion percentage 0–100.
        start_date: Planned start date.
        end_date: Planned end date.
        duration: Planned duration in days.
        type: "TASK", "MILESTONE" or "ISSUE".
        status_reason: Reason given for the last pause/cancel.
        paused_at: When the task last entered PAUSED.
        actual_start_time: When the task first entered IN_PROGRESS.
        actual_end_time: When the task was completed.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "task"
    __table_args__ = (
        CheckConstraint(
            "(status = 'COMPLETED' AND progress = 100) OR "
            "(status <> 'COMPLETED' AND progress < 100)",
            name="ck_task_completion_consistency",
        ),
        CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_task_progress_range",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("project.id"), nullable=False, index=True)
    function_id = Column(Integer, nullable=True)
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    phase = Column(String(100), nullable=True)
    assigned_to = Column(Integer, ForeignKey("user_account.id"), nullable=True)
    priority = Column(String(10), default="MEDIUM", nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    # "PENDING", "IN_PROGRESS", "PAUSED", "COMPLETED", "CANCELLED"
    progress = Column(Integer, default=0, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    duration = Column(Integer, nullable=True)
    type = Column(String(20), default="TASK", nullable=False)
    status_reason = Column(Text, nullable=True)
    paused_at = Column(DateTime, nullable=True)
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="tasks", lazy="select")
    predecessor_edges = relationship(
        "TaskDependency",
        foreign_keys="TaskDependency.task_id",
        back_populates="task",
        order_by="TaskDependency.id",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def predecessors(self) -> list[int]:
        return [edge.predecessor_id for edge in self.predecessor_edges]
