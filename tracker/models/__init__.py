"""SQLAlchemy models package for the Project Tracker backend.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from tracker.models import Task, ProjectMilestone
"""

# Leaf tables (no FK dependencies on other domain models)
from tracker.models.user import User  # noqa: F401
from tracker.models.project import Project  # noqa: F401
from tracker.models.audit_log import AuditLog  # noqa: F401

# Task lifecycle
from tracker.models.task import Task  # noqa: F401
from tracker.models.task_dependency import TaskDependency  # noqa: F401

# Milestone templates and their per-project instances
from tracker.models.milestone_template import MilestoneTemplate  # noqa: F401
from tracker.models.milestone_version import MilestoneVersion  # noqa: F401
from tracker.models.project_milestone import ProjectMilestone  # noqa: F401

__all__ = [
    "User",
    "Project",
    "AuditLog",
    "Task",
    "TaskDependency",
    "MilestoneTemplate",
    "MilestoneVersion",
    "ProjectMilestone",
]
