"""
socialgen/models/template.py

Hashtag template models.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Platform = Literal["instagram", "twitter", "facebook", "linkedin", "all"]

MAX_TEMPLATE_HASHTAGS = 30


class HashtagTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    hashtags: List[str]
    category: Optional[str] = None
    platform: Platform = "all"
    created_at: datetime
    updated_at: datetime


class TemplateCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    hashtags: List[str] = Field(min_length=1, max_length=MAX_TEMPLATE_HASHTAGS)
    category: Optional[str] = None
    platform: Platform = "all"


class TemplateUpdateRequest(BaseModel):
    """Partial update; fields left as None are unchanged."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    hashtags: Optional[List[str]] = Field(default=None, min_length=1, max_length=MAX_TEMPLATE_HASHTAGS)
    category: Optional[str] = None
    platform: Optional[Platform] = None


class TemplatePage(BaseModel):
    templates: List[HashtagTemplate]
    total_count: int
    has_more: bool
