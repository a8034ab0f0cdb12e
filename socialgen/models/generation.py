"""
socialgen/models/generation.py

Caption generation and hashtag analysis models.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

GenerationPlatform = Literal["twitter", "facebook", "linkedin", "instagram"]
Difficulty = Literal["easy", "medium", "hard", "very_hard"]


class CaptionRequest(BaseModel):
    platform: GenerationPlatform = "twitter"
    tone: str = Field(default="Professional", min_length=1)
    context: Optional[str] = None
    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)


class Caption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    platform: str
    tone: str
    prompt: str
    text: str
    hashtags: List[str]
    created_at: datetime


class HashtagAnalysisRequest(BaseModel):
    hashtags: List[str] = Field(min_length=1, max_length=30)
    platform: Literal["twitter", "facebook", "linkedin", "instagram", "all"] = "all"


class HashtagCompetition(BaseModel):
    model_config = ConfigDict(frozen=True)

    hashtag: str
    platform: str
    template_count: int
    competition_score: int
    difficulty: Difficulty


class HashtagAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    results: List[HashtagCompetition]
    created_at: datetime


class HashtagStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    previous_total: int
    percentage_change: float
