"""
Tests for the milestone template versioning store.

Covers:
- Version numbering and inactive creation
- Single-active publish
- Content parsing, including corrupt stored content
- Bootstrapping version 1 from the legacy table
- Admin-only access to the endpoints
"""

import pytest
from fastapi import HTTPException

from tracker.models.milestone_template import MilestoneTemplate
from tracker.models.milestone_version import MilestoneVersion
from tracker.schemas.milestone import MilestoneVersionCreate
from tracker.services import milestone_version_service

TREE = [
    {
        "id": "p1",
        "name": "Kick-off",
        "children": [
            {"id": "a", "name": "Collect documents", "input_docs": "Contract,Study"},
            {"id": "b", "name": "Stakeholders", "is_required": 0},
        ],
    },
    {"id": "p2", "name": "Delivery", "children": [{"id": 7, "name": "Deploy"}]},
]


def _create(db, actor, name="Plan", content=TREE):
    return milestone_version_service.create_version(
        db, MilestoneVersionCreate.model_validate({"version_name": name, "content": content}), actor
    )


class TestVersionStore:
    """Tests for create/publish/get."""

    def test_numbers_start_at_one_and_increase(self, db, admin_user):
        first = _create(db, admin_user, "v1")
        second = _create(db, admin_user, "v2")
        assert first.version_number == 1
        assert second.version_number == 2

    def test_new_version_is_inactive(self, db, admin_user):
        created = _create(db, admin_user)
        assert db.get(MilestoneVersion, created.id).is_active is False
        assert milestone_version_service.get_active(db) is None

    def test_publish_leaves_single_active(self, db, admin_user):
        v1 = _create(db, admin_user, "v1")
        v2 = _create(db, admin_user, "v2")
        milestone_version_service.publish(db, v1.id, admin_user)
        milestone_version_service.publish(db, v2.id, admin_user)

        active = db.query(MilestoneVersion).filter(MilestoneVersion.is_active.is_(True)).all()
        assert [v.id for v in active] == [v2.id]

    def test_republishing_active_version_is_harmless(self, db, admin_user):
        v1 = _create(db, admin_user)
        milestone_version_service.publish(db, v1.id, admin_user)
        summary = milestone_version_service.publish(db, v1.id, admin_user)
        assert summary.is_active is True

    def test_publish_unknown_is_404(self, db, admin_user):
        with pytest.raises(HTTPException) as exc_info:
            milestone_version_service.publish(db, 31337, admin_user)
        assert exc_info.value.status_code == 404

    def test_detail_normalises_content(self, db, admin_user):
        created = _create(db, admin_user)
        detail = milestone_version_service.get_version_detail(db, created.id)

        first, second = detail.content
        assert first.children[0].input_docs == ["Contract", "Study"]
        assert first.children[1].is_required is False
        assert second.children[0].id == "7"

    def test_corrupt_content_reads_as_empty(self, db, admin_user):
        version = MilestoneVersion(
            version_name="Broken", version_number=1, content="{not json", created_by=admin_user.id
        )
        db.add(version)
        db.commit()
        assert milestone_version_service.get_version_detail(db, version.id).content == []

    def test_list_is_newest_first(self, db, admin_user):
        _create(db, admin_user, "v1")
        _create(db, admin_user, "v2")
        numbers = [v.version_number for v in milestone_version_service.list_versions(db)]
        assert numbers == [2, 1]


class TestBootstrapFromLegacy:
    """Tests for building version 1 from the legacy table."""

    def test_groups_by_phase_and_publishes(self, db, admin_user):
        db.add_all([
            MilestoneTemplate(phase="Start", name="A", order_index=1, input_docs="X,Y"),
            MilestoneTemplate(phase="Start", name="B", order_index=2),
            MilestoneTemplate(phase="End", name="C", order_index=3, is_required=False),
        ])
        db.commit()

        version = milestone_version_service.bootstrap_from_legacy(db, admin_user)

        assert version.version_number == 1
        assert version.is_active is True
        tree = milestone_version_service.parse_content(version.content)
        assert [p.name for p in tree] == ["Start", "End"]
        assert [c.name for c in tree[0].children] == ["A", "B"]
        assert tree[0].children[0].input_docs == ["X", "Y"]
        assert tree[1].children[0].is_required is False

    def test_skips_when_versions_exist(self, db, admin_user):
        db.add(MilestoneTemplate(phase="Start", name="A", order_index=1))
        db.commit()
        _create(db, admin_user)
        assert milestone_version_service.bootstrap_from_legacy(db, admin_user) is None

    def test_skips_without_legacy_rows(self, db):
        assert milestone_version_service.bootstrap_from_legacy(db) is None


class TestVersionEndpoints:
    """HTTP tests for /api/milestone-versions."""

    def test_regular_user_forbidden(self, client, user_headers):
        assert client.get("/api/milestone-versions/", headers=user_headers).status_code == 403

    def test_create_publish_and_read_active(self, client, admin_headers):
        created = client.post(
            "/api/milestone-versions/",
            json={"version_name": "2026 plan", "content": TREE},
            headers=admin_headers,
        )
        assert created.status_code == 201
        version_id = created.json()["id"]

        missing = client.get("/api/milestone-versions/active", headers=admin_headers)
        assert missing.status_code == 404

        published = client.post(
            f"/api/milestone-versions/{version_id}/publish", headers=admin_headers
        )
        assert published.status_code == 200
        assert published.json()["is_active"] is True

        active = client.get("/api/milestone-versions/active", headers=admin_headers).json()
        assert active["id"] == version_id
        assert len(active["content"]) == 2

    def test_unknown_version_is_404(self, client, admin_headers):
        assert client.get("/api/milestone-versions/99", headers=admin_headers).status_code == 404
