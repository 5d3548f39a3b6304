"""
Shared Pydantic v2 schemas reused across the task and milestone modules.

Provides the error-detail shapes that the OpenAPI ``responses`` blocks
advertise, so that each router can compose them without duplicating field
definitions.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of an ``HTTPException`` raised with a plain-text detail.

    Attributes:
        detail: Human-readable error description.
    """

    detail: str = Field(..., description="What went wrong.")


class BlockedDetail(BaseModel):
    """``detail`` payload of a 400 raised when predecessors are unfinished.

    Attributes:
        message: Human-readable explanation naming the blocking tasks.
        blockers: Names of the predecessor tasks that are not COMPLETED.
    """

    message: str
    blockers: list[str] = Field(default_factory=list)


class BlockedResponse(BaseModel):
    """Error body for a dependency-gated transition that was refused."""

    detail: BlockedDetail


class HealthResponse(BaseModel):
    status: str
    app: str
