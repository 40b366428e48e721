"""
Task data models for Tasks Service.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CacheStatus(str, Enum):
    """How a read was served."""
    HIT = "cache-hit"
    MISS = "cache-miss"
    ERROR = "error"


class Task(BaseModel):
    """Task record as owned by the store."""
    id: int = Field(..., description="Store-assigned task ID")
    description: str = Field(..., min_length=1, description="Task description")
    completed: bool = Field(default=False, description="Completion flag")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class TaskCreateRequest(BaseModel):
    """Create task request.

    ``description`` is optional here so that a missing value is reported by
    the service as a validation error rather than a schema error.
    """
    description: Optional[str] = Field(None, description="Task description")


class TaskUpdateRequest(BaseModel):
    """Update task request; omitted fields are left unchanged."""
    description: Optional[str] = Field(None, description="New description")
    completed: Optional[bool] = Field(None, description="New completion flag")


class TaskListResponse(BaseModel):
    """List tasks response."""
    cache: CacheStatus = Field(..., description="How the list was served")
    data: List[Task] = Field(default_factory=list, description="Tasks in insertion order")


class CacheStatsResponse(BaseModel):
    """Cache statistics response."""
    backend: str = Field(..., description="Active cache backend")
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    hit_rate: str = Field(..., description="Hit rate as a percentage string")
    miss_rate: str = Field(..., description="Miss rate as a percentage string")
    description: Dict[str, str] = Field(default_factory=dict, description="Field descriptions")


class CacheStatsResetResponse(BaseModel):
    """Cache statistics reset response."""
    message: str
    stats: CacheStatsResponse
