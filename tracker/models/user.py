"""User model — resolved identity for audit attribution and role gates."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from tracker.database import Base


class User(Base):
    """Application user.

    Roles:
        - SUPER_ADMIN: Full access, including milestone template versions.
        - SYS_ADMIN: System configuration, including milestone template versions.
        - USER: Day-to-day project and task work.

    Attributes:
        id: Primary key.
        username: Unique login name.
        password_hash: Bcrypt hash (never plain text).
        real_name: Display name.
        role: Role code from ``constants.ROLES``.
        is_active: Disabled accounts cannot authenticate.
        last_login_at: Timestamp of the last successful login.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    # "user" is reserved in PostgreSQL
    __tablename__ = "user_account"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(200), nullable=False)
    real_name = Column(String(200), nullable=True)
    role = Column(String(30), nullable=False, default="USER")
    # "SUPER_ADMIN", "SYS_ADMIN", "USER"
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
