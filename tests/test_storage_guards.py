"""
Tests for the constraints the schema enforces on its own.

Covers:
- Completion/progress consistency CHECK on the task table
- At most one active milestone version
"""

import pytest
from sqlalchemy.exc import IntegrityError

from tracker.models.milestone_version import MilestoneVersion
from tracker.models.task import Task


class TestTaskCompletionCheck:
    """ck_task_completion_consistency rejects mismatched rows."""

    def test_completed_below_full_progress_rejected(self, db, project):
        db.add(Task(project_id=project.id, name="Half done", status="COMPLETED", progress=50))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_full_progress_while_open_rejected(self, db, project):
        db.add(Task(project_id=project.id, name="Open", status="IN_PROGRESS", progress=100))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_consistent_rows_accepted(self, db, project):
        db.add_all([
            Task(project_id=project.id, name="Done", status="COMPLETED", progress=100),
            Task(project_id=project.id, name="Open", status="IN_PROGRESS", progress=99),
        ])
        db.commit()
        assert db.query(Task).count() == 2


class TestSingleActiveVersion:
    """uq_milestone_version_single_active allows one active row."""

    def test_two_active_versions_rejected(self, db):
        db.add_all([
            MilestoneVersion(version_name="v1", version_number=1, content="[]", is_active=True),
            MilestoneVersion(version_name="v2", version_number=2, content="[]", is_active=True),
        ])
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_many_inactive_versions_accepted(self, db):
        db.add_all([
            MilestoneVersion(version_name="v1", version_number=1, content="[]", is_active=True),
            MilestoneVersion(version_name="v2", version_number=2, content="[]", is_active=False),
            MilestoneVersion(version_name="v3", version_number=3, content="[]", is_active=False),
        ])
        db.commit()
        assert db.query(MilestoneVersion).filter(MilestoneVersion.is_active.is_(True)).count() == 1
