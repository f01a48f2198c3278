"""
Common schema types used across the API.
"""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Body of every error and of operations that only report an outcome."""

    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str
