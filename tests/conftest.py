"""
Pytest configuration for the Project Tracker tests.

Every test gets its own SQLite file under ``tmp_path``, the full schema, and
a ``TestClient`` whose ``get_db`` dependency is bound to that database.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

import tracker.models  # noqa: F401
from tracker.database import Base, build_engine, get_db
from tracker.main import app
from tracker.models.project import Project
from tracker.models.task import Task
from tracker.models.task_dependency import TaskDependency
from tracker.models.user import User
from tracker.utils.security import create_access_token, hash_password


# -----------------------------------------------------------------------------
# Database
# -----------------------------------------------------------------------------
@pytest.fixture
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory) -> Session:
    """Session for arranging data and calling services directly."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    """Create test client for FastAPI app bound to the test database."""

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


# -----------------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------------
def _make_user(db: Session, username: str, role: str) -> User:
    user = User(
        username=username,
        password_hash=hash_password("Secret123!"),
        real_name=username.title(),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db) -> User:
    return _make_user(db, "admin", "SUPER_ADMIN")


@pytest.fixture
def regular_user(db) -> User:
    return _make_user(db, "alice", "USER")


def _headers_for(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "username": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    return _headers_for(admin_user)


@pytest.fixture
def user_headers(regular_user) -> dict[str, str]:
    return _headers_for(regular_user)


# -----------------------------------------------------------------------------
# Domain data
# -----------------------------------------------------------------------------
@pytest.fixture
def project(db) -> Project:
    project = Project(name="Test project")
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def make_task(db, project):
    """Factory inserting a task directly, bypassing the service rules."""

    def _make_task(
        name: str,
        status: str = "PENDING",
        progress: int | None = None,
        predecessors: list[Task] | None = None,
        **fields,
    ) -> Task:
        if progress is None:
            progress = 100 if status == "COMPLETED" else 0
        task = Task(
            project_id=project.id, name=name, status=status, progress=progress, **fields
        )
        db.add(task)
        db.flush()
        for predecessor in predecessors or []:
            db.add(TaskDependency(task_id=task.id, predecessor_id=predecessor.id))
        db.commit()
        db.refresh(task)
        return task

    return _make_task
