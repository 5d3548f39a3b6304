"""
Dependency graph checks for tasks.

Two questions are answered here:

- ``check_can_activate`` — may this task enter IN_PROGRESS? Every
  predecessor must be COMPLETED; the rest are reported by name as blockers.
- ``validate_predecessors`` — is a proposed predecessor set acceptable for
  a task? It must not contain the task itself, must reference existing
  tasks, and must not close a loop anywhere in the existing graph.

Design notes
------------
- Predecessor rows are read ``FOR SHARE`` (PostgreSQL) so that the check
  and the transition that follows it see the same predecessor states until
  the caller's transaction ends. SQLite ignores row locks; see DESIGN.md.
- COMPLETED is terminal, so a passing check cannot be invalidated by a
  predecessor reverting; the lock only matters for the blocker report.
- Cycle detection walks the existing ``task_dependency`` edges breadth-first
  from each proposed predecessor; reaching the task itself means the new
  set would close a loop.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from tracker.models.task import Task
from tracker.models.task_dependency import TaskDependency
from tracker.utils.constants import TASK_COMPLETED

logger = logging.getLogger(__name__)


@dataclass
class DependencyCheck:
    """Outcome of ``check_can_activate``.

    Attributes:
        ok: True when every predecessor is COMPLETED (or there are none).
        blockers: Names of unfinished predecessors, in edge order.
    """

    ok: bool
    blockers: list[str] = field(default_factory=list)


def check_can_activate(
    db: Session, task_id: int, predecessor_ids: list[int] | None = None
) -> DependencyCheck:
    """Check whether every predecessor of ``task_id`` is COMPLETED.

    Args:
        db: Active SQLAlchemy session (the caller's write transaction).
        task_id: Task about to enter IN_PROGRESS; must exist.
        predecessor_ids: Proposed predecessor set to check instead of the
            stored edges, for updates that replace edges and change status
            in one request.

    Returns:
        A ``DependencyCheck``; ``ok`` is True for tasks with no predecessors.
    """
    if predecessor_ids is None:
        rows = (
            db.query(Task.id, Task.name, Task.status)
            .join(TaskDependency, TaskDependency.predecessor_id == Task.id)
            .filter(TaskDependency.task_id == task_id)
            .order_by(TaskDependency.id.asc())
            .with_for_update(read=True, of=Task)
            .all()
        )
    else:
        by_id = {
            row.id: row
            for row in db.query(Task.id, Task.name, Task.status)
            .filter(Task.id.in_(predecessor_ids))
            .with_for_update(read=True)
            .all()
        }
        rows = [by_id[pid] for pid in predecessor_ids if pid in by_id]

    blockers = [row.name for row in rows if row.status != TASK_COMPLETED]

    logger.debug(
        "check_can_activate: task_id=%d predecessors=%d blockers=%d",
        task_id, len(rows), len(blockers),
    )
    return DependencyCheck(ok=not blockers, blockers=blockers)


def raise_if_blocked(
    db: Session, task_id: int, predecessor_ids: list[int] | None = None
) -> None:
    """Raise the user-facing 400 carrying blocker names when gating fails.

    Raises:
        HTTPException 400: ``detail = {"message": ..., "blockers": [...]}``.
    """
    result = check_can_activate(db, task_id, predecessor_ids)
    if result.ok:
        return

    logger.info(
        "Task id=%d blocked by unfinished predecessors: %s", task_id, result.blockers
    )
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": "Predecessor tasks not completed: " + ", ".join(result.blockers),
            "blockers": result.blockers,
        },
    )


def find_cycle(db: Session, task_id: int, predecessor_ids: list[int]) -> list[int] | None:
    """Return the loop closed by giving ``task_id`` these predecessors, if any.

    The returned path starts at ``task_id`` and follows predecessor edges back
    to it, e.g. ``[A, B, C, A]`` for A depending on B, B on C and C on A.
    Edges currently stored for ``task_id`` itself are ignored because the
    proposed set replaces them.
    """
    # predecessor_of[x] = tasks x depends on
    predecessor_of: dict[int, list[int]] = {}
    for dependent, predecessor in db.query(
        TaskDependency.task_id, TaskDependency.predecessor_id
    ).filter(TaskDependency.task_id != task_id):
        predecessor_of.setdefault(dependent, []).append(predecessor)

    for start in predecessor_ids:
        came_from: dict[int, int] = {start: task_id}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node == task_id:
                path = [task_id]
                step = came_from[task_id]
                while step != task_id:
                    path.append(step)
                    step = came_from[step]
                path.append(task_id)
                # Built backwards from the closing edge
                return [path[0]] + list(reversed(path[1:-1])) + [path[-1]]
            for nxt in predecessor_of.get(node, []):
                if nxt not in came_from:
                    came_from[nxt] = node
                    queue.append(nxt)
    return None


def validate_predecessors(db: Session, task_id: int | None, predecessor_ids: list[int]) -> list[int]:
    """Validate a proposed predecessor set and return it de-duplicated.

    Args:
        db: Active SQLAlchemy session.
        task_id: The dependent task, or ``None`` for a task being created
                 (a new task has no dependents, so no loop is possible).
        predecessor_ids: Proposed full replacement set.

    Returns:
        The ids in first-seen order without duplicates.

    Raises:
        HTTPException 400: Self-dependency, unknown predecessor ids, or a
                           dependency loop.
    """
    unique_ids = list(dict.fromkeys(predecessor_ids))

    if task_id is not None and task_id in unique_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A task cannot depend on itself.",
        )

    if unique_ids:
        found = {
            row.id for row in db.query(Task.id).filter(Task.id.in_(unique_ids)).all()
        }
        missing = [pid for pid in unique_ids if pid not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Predecessor tasks not found: {missing}.",
            )

    if task_id is not None and unique_ids:
        cycle = find_cycle(db, task_id, unique_ids)
        if cycle is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    "Dependency loop detected: "
                    + " -> ".join(str(node) for node in cycle)
                    + "."
                ),
            )

    return unique_ids
