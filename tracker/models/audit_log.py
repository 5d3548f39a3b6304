"""AuditLog model — append-only record of task and milestone changes."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from tracker.database import Base


class AuditLog(Base):
    """Audit entry written after each core write (and each denied edit).

    Attributes:
        id: Primary key.
        user_id: ID of the acting User.
        username: Snapshot of the username at action time (denormalised so
            that renames do not rewrite history).
        action: "CREATE", "UPDATE", "UPDATE_STATUS", "UPDATE_DENIED",
            "BATCH_UPDATE", "PUBLISH", ...
        target_module: "TASK" or "MILESTONE".
        target_id: Primary key of the affected row, as text; ``None`` for
            aggregate entries such as batch updates.
        details: JSON-serialised payload describing the change.
        created_at: Timestamp of the entry.
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    username = Column(String(100), nullable=True)
    action = Column(String(50), nullable=False)
    target_module = Column(String(30), nullable=False)
    target_id = Column(String(50), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
