"""
Application-wide constants for the Project Tracker backend.

Defines domain enumerations, the task transition table, and the lookup
lists used across routers, services, and models.
"""

from typing import Final

# ---------------------------------------------------------------------------
# User roles
# ---------------------------------------------------------------------------

ROLES: Final[list[str]] = [
    "SUPER_ADMIN",
    "SYS_ADMIN",
    "USER",
]

# Roles allowed to manage milestone template versions
ADMIN_ROLES: Final[tuple[str, ...]] = ("SUPER_ADMIN", "SYS_ADMIN")

# ---------------------------------------------------------------------------
# Task states
# ---------------------------------------------------------------------------

TASK_PENDING: Final[str] = "PENDING"
TASK_IN_PROGRESS: Final[str] = "IN_PROGRESS"
TASK_PAUSED: Final[str] = "PAUSED"
TASK_COMPLETED: Final[str] = "COMPLETED"
TASK_CANCELLED: Final[str] = "CANCELLED"

TASK_STATUSES: Final[list[str]] = [
    TASK_PENDING,
    TASK_IN_PROGRESS,
    TASK_PAUSED,
    TASK_COMPLETED,
    TASK_CANCELLED,
]

# Legal status transitions; terminal states map to an empty set.
TASK_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    TASK_PENDING: frozenset({TASK_IN_PROGRESS, TASK_CANCELLED}),
    TASK_IN_PROGRESS: frozenset({TASK_PAUSED, TASK_COMPLETED, TASK_CANCELLED}),
    TASK_PAUSED: frozenset({TASK_IN_PROGRESS, TASK_CANCELLED}),
    TASK_COMPLETED: frozenset(),
    TASK_CANCELLED: frozenset(),
}

TASK_TERMINAL_STATUSES: Final[frozenset[str]] = frozenset(
    {TASK_COMPLETED, TASK_CANCELLED}
)

# Transitions that must carry a status_reason
TASK_REASON_REQUIRED: Final[frozenset[str]] = frozenset({TASK_PAUSED, TASK_CANCELLED})

# Transitions gated by the predecessor check
TASK_DEPENDENCY_GATED: Final[frozenset[str]] = frozenset({TASK_IN_PROGRESS})

COMPLETE_PROGRESS: Final[int] = 100

# ---------------------------------------------------------------------------
# Task attributes
# ---------------------------------------------------------------------------

TASK_PRIORITIES: Final[list[str]] = ["HIGH", "MEDIUM", "LOW"]

TASK_TYPES: Final[list[str]] = ["TASK", "MILESTONE", "ISSUE"]

# Finish-to-start is the only dependency semantics supported
DEPENDENCY_TYPE_FINISH_TO_START: Final[str] = "FS"

# ---------------------------------------------------------------------------
# Project milestone states
# ---------------------------------------------------------------------------

MILESTONE_STATUSES: Final[list[str]] = [
    "PENDING",
    "IN_PROGRESS",
    "COMPLETED",
    "SKIPPED",
    "PAUSED",
]

# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

AUDIT_MODULE_TASK: Final[str] = "TASK"
AUDIT_MODULE_MILESTONE: Final[str] = "MILESTONE"
