"""MilestoneVersion model — numbered snapshot of the phase/process tree."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.sql import func

from tracker.database import Base


class MilestoneVersion(Base):
    """Immutable snapshot of the milestone template tree.

    Edits never mutate a stored version; they produce a new one. Exactly one
    version is active at a time, which the partial unique index
    ``uq_milestone_version_single_active`` guarantees at the storage layer.

    Attributes:
        id: Primary key.
        version_name: Human label, e.g. "Initial Version".
        version_number: ``max(existing) + 1``, unique.
        content: JSON text — list of phases, each with ``children`` processes.
        is_active: Whether this is the version new projects are seeded from.
        created_by: FK to the User that created the snapshot.
        created_at: Record creation timestamp.
    """

    __tablename__ = "milestone_version"
    __table_args__ = (
        Index(
            "uq_milestone_version_single_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    version_name = Column(String(200), nullable=False)
    version_number = Column(Integer, unique=True, nullable=False)
    content = Column(Text, nullable=False, default="[]")
    is_active = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("user_account.id"), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
