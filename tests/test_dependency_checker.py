"""
Tests for the dependency graph checks.

Covers:
- Gating of IN_PROGRESS on completed predecessors
- Blocker reporting in edge order
- Predecessor set validation (self, unknown ids, loops)
"""

import pytest
from fastapi import HTTPException

from tracker.services.dependency_service import (
    check_can_activate,
    find_cycle,
    raise_if_blocked,
    validate_predecessors,
)


# -----------------------------------------------------------------------------
# check_can_activate
# -----------------------------------------------------------------------------
class TestCheckCanActivate:
    """Tests for the activation gate."""

    def test_no_predecessors_is_ok(self, db, make_task):
        task = make_task("Standalone")
        result = check_can_activate(db, task.id)
        assert result.ok is True
        assert result.blockers == []

    def test_all_predecessors_completed_is_ok(self, db, make_task):
        a = make_task("A", status="COMPLETED")
        b = make_task("B", status="COMPLETED")
        c = make_task("C", predecessors=[a, b])
        assert check_can_activate(db, c.id).ok is True

    def test_unfinished_predecessors_are_blockers(self, db, make_task):
        """Only the unfinished predecessors are named, in edge order."""
        a = make_task("Design", status="COMPLETED")
        b = make_task("Build", status="IN_PROGRESS")
        c = make_task("Review")
        d = make_task("Release", predecessors=[a, b, c])

        result = check_can_activate(db, d.id)
        assert result.ok is False
        assert result.blockers == ["Build", "Review"]

    def test_cancelled_predecessor_blocks(self, db, make_task):
        a = make_task("Dropped", status="CANCELLED")
        b = make_task("Next", predecessors=[a])
        assert check_can_activate(db, b.id).blockers == ["Dropped"]

    def test_proposed_set_overrides_stored_edges(self, db, make_task):
        a = make_task("Open")
        b = make_task("Done", status="COMPLETED")
        c = make_task("Target", predecessors=[a])

        assert check_can_activate(db, c.id, [b.id]).ok is True
        assert check_can_activate(db, c.id, [a.id, b.id]).blockers == ["Open"]

    def test_raise_if_blocked_detail(self, db, make_task):
        a = make_task("Survey", status="IN_PROGRESS")
        b = make_task("Build", predecessors=[a])

        with pytest.raises(HTTPException) as exc_info:
            raise_if_blocked(db, b.id)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["blockers"] == ["Survey"]
        assert "Survey" in exc_info.value.detail["message"]


# -----------------------------------------------------------------------------
# validate_predecessors / find_cycle
# -----------------------------------------------------------------------------
class TestValidatePredecessors:
    """Tests for predecessor set validation."""

    def test_duplicates_are_removed_in_order(self, db, make_task):
        a = make_task("A")
        b = make_task("B")
        assert validate_predecessors(db, None, [b.id, a.id, b.id]) == [b.id, a.id]

    def test_self_dependency_rejected(self, db, make_task):
        a = make_task("A")
        with pytest.raises(HTTPException) as exc_info:
            validate_predecessors(db, a.id, [a.id])
        assert exc_info.value.status_code == 400
        assert "itself" in exc_info.value.detail

    def test_unknown_predecessor_rejected(self, db, make_task):
        a = make_task("A")
        with pytest.raises(HTTPException) as exc_info:
            validate_predecessors(db, a.id, [9999])
        assert exc_info.value.status_code == 400
        assert "9999" in exc_info.value.detail

    def test_direct_loop_rejected(self, db, make_task):
        a = make_task("A")
        b = make_task("B", predecessors=[a])
        with pytest.raises(HTTPException) as exc_info:
            validate_predecessors(db, a.id, [b.id])
        assert exc_info.value.status_code == 400
        assert "loop" in exc_info.value.detail

    def test_transitive_loop_path(self, db, make_task):
        """A -> B -> C -> A is reported starting and ending at A."""
        a = make_task("A")
        c = make_task("C", predecessors=[a])
        b = make_task("B", predecessors=[c])
        assert find_cycle(db, a.id, [b.id]) == [a.id, b.id, c.id, a.id]

    def test_diamond_is_not_a_loop(self, db, make_task):
        root = make_task("Root")
        left = make_task("Left", predecessors=[root])
        right = make_task("Right", predecessors=[root])
        join = make_task("Join")
        assert validate_predecessors(db, join.id, [left.id, right.id]) == [left.id, right.id]

    def test_replacing_own_edges_is_not_a_loop(self, db, make_task):
        """The task's current edges are ignored because the new set replaces them."""
        a = make_task("A")
        b = make_task("B", predecessors=[a])
        assert find_cycle(db, b.id, [a.id]) is None
