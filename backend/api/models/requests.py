"""
Pydantic request models for API endpoints.
"""
from pydantic import BaseModel, Field


class ReloadRequest(BaseModel):
    """Request model for an administrative reload."""
    clear_cache: bool = Field(default=False, description="Drop cached payloads before reloading")
