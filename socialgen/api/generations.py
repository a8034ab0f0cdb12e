"""
Generation API: captions, hashtag competition analysis, monthly hashtag stats.
"""
from fastapi import APIRouter, Depends

from socialgen.core.auth import get_current_user_id
from socialgen.features.generations.service import (
    analyze_hashtags,
    generate_caption,
    get_hashtag_stats,
)
from socialgen.features.quota.service import raise_for_denial
from socialgen.models.generation import (
    Caption,
    CaptionRequest,
    HashtagAnalysis,
    HashtagAnalysisRequest,
    HashtagStats,
)


router = APIRouter(prefix="/v1/generations", tags=["generations"])


@router.post("/caption", response_model=Caption)
def caption(request: CaptionRequest, user_id: str = Depends(get_current_user_id)):
    """
    Generate a caption for one platform.

    Errors:
        403: caption_generation quota used up, or subscription inactive
    """
    gated = generate_caption(user_id, request)
    raise_for_denial(gated.decision)
    return gated.result


@router.post("/hashtag-analysis", response_model=HashtagAnalysis)
def hashtag_analysis(request: HashtagAnalysisRequest, user_id: str = Depends(get_current_user_id)):
    gated = analyze_hashtags(user_id, request)
    raise_for_denial(gated.decision)
    return gated.result


@router.get("/hashtag-stats", response_model=HashtagStats)
def hashtag_stats(user_id: str = Depends(get_current_user_id)):
    return get_hashtag_stats(user_id)
