"""
Tests for the project milestone provisioner.

Covers:
- Flattening of version trees into ordered drafts
- Source selection (active version vs legacy table)
- Idempotent first read, including a lost provisioning race
- Tracking updates on a single milestone
"""

import datetime

import pytest
from fastapi import HTTPException

from tracker.models.milestone_template import MilestoneTemplate
from tracker.models.project_milestone import ProjectMilestone
from tracker.schemas.milestone import MilestoneVersionCreate, PhaseNode, ProjectMilestoneUpdate
from tracker.services import milestone_service, milestone_version_service
from tracker.services.milestone_service import (
    LegacyTemplateSource,
    MilestoneDraft,
    flatten_version_content,
    get_project_milestones,
    update_project_milestone,
)

TREE = [
    {"name": "P1", "children": [{"name": "a"}, {"name": "b", "output_docs": ["Report"]}]},
    {"name": "P2", "children": [{"name": "c"}]},
]


def _publish(db, actor, content=TREE):
    created = milestone_version_service.create_version(
        db,
        MilestoneVersionCreate.model_validate({"version_name": "Plan", "content": content}),
        actor,
    )
    milestone_version_service.publish(db, created.id, actor)
    return created.id


def _legacy(db):
    db.add_all([
        MilestoneTemplate(phase="Start", name="Legacy A", order_index=10),
        MilestoneTemplate(phase="Start", name="Legacy B", order_index=20, output_docs="Minutes"),
    ])
    db.commit()


class TestFlatten:
    """Tests for flatten_version_content."""

    def test_running_order_index(self):
        tree = [PhaseNode.model_validate(phase) for phase in TREE]
        drafts = flatten_version_content(tree, version_id=3)
        assert [(d.phase, d.name, d.order_index) for d in drafts] == [
            ("P1", "a", 1),
            ("P1", "b", 2),
            ("P2", "c", 3),
        ]
        assert all(d.version_id == 3 for d in drafts)
        assert drafts[1].output_docs == ["Report"]

    def test_empty_tree(self):
        assert flatten_version_content([]) == []


class TestGetProjectMilestones:
    """Tests for lazy provisioning."""

    def test_provisions_from_active_version(self, db, project, admin_user):
        version_id = _publish(db, admin_user)
        rows = get_project_milestones(db, project.id)

        assert [(r.name, r.order_index) for r in rows] == [("a", 1), ("b", 2), ("c", 3)]
        assert all(r.version_id == version_id for r in rows)
        assert all(r.status == "PENDING" for r in rows)
        assert rows[1].output_docs == ["Report"]

    def test_active_version_wins_over_legacy(self, db, project, admin_user):
        _legacy(db)
        _publish(db, admin_user)
        assert [r.name for r in get_project_milestones(db, project.id)] == ["a", "b", "c"]

    def test_falls_back_to_legacy_table(self, db, project):
        _legacy(db)
        rows = get_project_milestones(db, project.id)

        assert [(r.name, r.order_index) for r in rows] == [("Legacy A", 10), ("Legacy B", 20)]
        assert all(r.template_id is not None for r in rows)
        assert rows[1].output_docs == ["Minutes"]

    def test_second_read_does_not_reprovision(self, db, project, admin_user):
        _publish(db, admin_user)
        first = get_project_milestones(db, project.id)

        _publish(db, admin_user, content=[{"name": "Other", "children": [{"name": "z"}]}])
        second = get_project_milestones(db, project.id)

        assert [r.id for r in second] == [r.id for r in first]
        assert db.query(ProjectMilestone).count() == 3

    def test_no_template_returns_empty_without_writing(self, db, project):
        assert get_project_milestones(db, project.id) == []
        assert db.query(ProjectMilestone).count() == 0

    def test_unknown_project_is_404(self, db):
        with pytest.raises(HTTPException) as exc_info:
            get_project_milestones(db, 404)
        assert exc_info.value.status_code == 404

    def test_lost_race_rereads_winner(self, db, session_factory, project, monkeypatch):
        """A concurrent first read inserts between our read and our insert."""
        _legacy(db)
        real_drafts = LegacyTemplateSource.drafts

        def drafts_after_competitor(self, session):
            drafts = real_drafts(self, session)
            competitor = session_factory()
            try:
                competitor.add_all(
                    MilestoneDraft(name=f"Winner {d.order_index}", order_index=d.order_index)
                    .to_row(project.id)
                    for d in drafts
                )
                competitor.commit()
            finally:
                competitor.close()
            return drafts

        monkeypatch.setattr(LegacyTemplateSource, "drafts", drafts_after_competitor)

        rows = get_project_milestones(db, project.id)

        assert [r.name for r in rows] == ["Winner 10", "Winner 20"]
        assert db.query(ProjectMilestone).count() == 2


class TestUpdateProjectMilestone:
    """Tests for tracking updates."""

    @pytest.fixture
    def milestone(self, db, project):
        _legacy(db)
        return get_project_milestones(db, project.id)[0]

    def test_updates_tracking_fields(self, db, milestone, regular_user):
        result = update_project_milestone(
            db,
            milestone.id,
            ProjectMilestoneUpdate(
                status="COMPLETED",
                actual_start_date=datetime.date(2026, 3, 2),
                actual_end_date=datetime.date(2026, 3, 9),
                output_files=["uploads/minutes.pdf"],
            ),
            regular_user,
        )
        assert result.status == "COMPLETED"
        assert result.output_files == ["uploads/minutes.pdf"]

    def test_invalid_status_rejected(self, db, milestone, regular_user):
        with pytest.raises(HTTPException) as exc_info:
            update_project_milestone(
                db, milestone.id, ProjectMilestoneUpdate(status="DONE"), regular_user
            )
        assert exc_info.value.status_code == 400

    def test_end_before_start_rejected(self, db, milestone, regular_user):
        with pytest.raises(HTTPException) as exc_info:
            update_project_milestone(
                db,
                milestone.id,
                ProjectMilestoneUpdate(
                    actual_start_date=datetime.date(2026, 3, 9),
                    actual_end_date=datetime.date(2026, 3, 2),
                ),
                regular_user,
            )
        assert exc_info.value.status_code == 400

    def test_unknown_milestone_is_404(self, db, regular_user):
        with pytest.raises(HTTPException) as exc_info:
            update_project_milestone(db, 999, ProjectMilestoneUpdate(remarks="x"), regular_user)
        assert exc_info.value.status_code == 404


class TestMilestoneEndpoints:
    """HTTP tests for the milestone routes."""

    def test_read_and_update(self, client, db, user_headers, project):
        _legacy(db)
        listed = client.get(f"/api/projects/{project.id}/milestones", headers=user_headers)
        assert listed.status_code == 200
        first = listed.json()[0]

        updated = client.put(
            f"/api/milestones/{first['id']}",
            json={"status": "IN_PROGRESS", "remarks": "Started"},
            headers=user_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["remarks"] == "Started"

    def test_null_status_is_malformed(self, client, db, user_headers, project):
        _legacy(db)
        first = client.get(
            f"/api/projects/{project.id}/milestones", headers=user_headers
        ).json()[0]
        response = client.put(
            f"/api/milestones/{first['id']}", json={"status": None}, headers=user_headers
        )
        assert response.status_code == 422


def test_source_selection(db, admin_user):
    assert isinstance(milestone_service.select_template_source(db), LegacyTemplateSource)
    _publish(db, admin_user)
    assert isinstance(
        milestone_service.select_template_source(db), milestone_service.ActiveVersionSource
    )
