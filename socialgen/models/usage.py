"""
socialgen/models/usage.py

Usage counter models.

Resource types:
- template_creation: user created or duplicated a hashtag template
- caption_generation: user generated a caption
- hashtag_analysis: user ran a hashtag competition analysis
"""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict


class ResourceType(str, Enum):
    TEMPLATE_CREATION = "template_creation"
    CAPTION_GENERATION = "caption_generation"
    HASHTAG_ANALYSIS = "hashtag_analysis"


class UsageCounter(BaseModel):
    """Consumption of one resource type by one user within one period."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    resource_type: str
    period_start: datetime
    count: int


class IncrementResult(BaseModel):
    """Outcome of the atomic conditional increment."""
    model_config = ConfigDict(frozen=True)

    new_count: int
    accepted: bool


class UsageSnapshot(BaseModel):
    """Read-only usage view for display."""
    model_config = ConfigDict(frozen=True)

    resource_type: str
    current: int
    limit: int
    percentage: int
    tier: str
    has_active_subscription: bool
    period_start: datetime
