"""
socialgen/features/generations/service.py

Caption generation and hashtag analysis.

Handles:
- Caption prompt building and quota-gated generation (caption_generation)
- Hashtag competition analysis, quota-gated (hashtag_analysis)
- Monthly hashtag statistics for the dashboard
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4
from sqlalchemy import select, insert, func

from socialgen.core.database import get_db_session, generations, hashtag_templates
from socialgen.core.errors import ValidationError
from socialgen.features.generations.prompts import CAPTION_PROMPT, PLATFORM_FORMATTING, TONE_OPTIONS
from socialgen.features.generations.writer import (
    CaptionWriter,
    TemplateCaptionWriter,
    normalize_hashtag,
    normalize_mention,
)
from socialgen.features.quota.service import run_gated
from socialgen.features.usage.service import current_period_start
from socialgen.models.generation import (
    Caption,
    CaptionRequest,
    HashtagAnalysis,
    HashtagAnalysisRequest,
    HashtagCompetition,
    HashtagStats,
)
from socialgen.models.quota import GatedResult
from socialgen.models.usage import ResourceType


logger = logging.getLogger(__name__)

KIND_CAPTION = "caption"
KIND_HASHTAG_ANALYSIS = "hashtag_analysis"

_default_writer = TemplateCaptionWriter()


def build_caption_prompt(request: CaptionRequest) -> str:
    """Prompt sent to the caption writer."""
    context = f" Context: {request.context.strip()}." if request.context and request.context.strip() else ""
    tags = [t for t in (normalize_hashtag(h) for h in request.hashtags) if t]
    hashtags = f" Include these hashtags: {' '.join(tags)}." if tags else ""
    handles = [m for m in (normalize_mention(h) for h in request.mentions) if m]
    mentions = f" Mention: {' '.join(handles)}." if handles else ""
    return CAPTION_PROMPT.format(
        tone=request.tone.lower(),
        platform=request.platform,
        context=context,
        hashtags=hashtags,
        mentions=mentions,
        formatting=PLATFORM_FORMATTING[request.platform]["rules"],
    )


def _store_generation(
    user_id: str,
    *,
    kind: str,
    platform: Optional[str],
    tone: Optional[str],
    prompt: Optional[str],
    output,
    hashtag_count: int,
    created_at: datetime,
) -> str:
    generation_id = str(uuid4())
    with get_db_session() as session:
        session.execute(
            insert(generations).values(
                id=generation_id,
                user_id=user_id,
                kind=kind,
                platform=platform,
                tone=tone,
                prompt=prompt,
                output=output,
                hashtag_count=hashtag_count,
                created_at=created_at,
            )
        )
    return generation_id


def _validate_tone(tone: str) -> None:
    if tone.strip().lower() not in {option.lower() for option in TONE_OPTIONS}:
        raise ValidationError(f"Unsupported tone: {tone}. Choose one of {', '.join(TONE_OPTIONS)}")


def generate_caption(
    user_id: str,
    request: CaptionRequest,
    writer: Optional[CaptionWriter] = None,
) -> GatedResult:
    """
    Generate a caption if the user's caption_generation quota allows it.

    Returns:
        GatedResult; result is the Caption when allowed
    """
    _validate_tone(request.tone)
    prompt = build_caption_prompt(request)
    active_writer = writer or _default_writer

    def _generate() -> Caption:
        text = active_writer.write(prompt, request)
        if not text or not text.strip():
            raise ValidationError("Caption writer returned an empty caption")
        now = datetime.now(timezone.utc)
        hashtags = [t for t in (normalize_hashtag(h) for h in request.hashtags) if t]
        generation_id = _store_generation(
            user_id,
            kind=KIND_CAPTION,
            platform=request.platform,
            tone=request.tone,
            prompt=prompt,
            output={"text": text},
            hashtag_count=len(hashtags),
            created_at=now,
        )
        return Caption(
            id=generation_id,
            platform=request.platform,
            tone=request.tone,
            prompt=prompt,
            text=text,
            hashtags=hashtags,
            created_at=now,
        )

    return run_gated(user_id, ResourceType.CAPTION_GENERATION.value, _generate)


def difficulty_for_score(score: int) -> str:
    if score < 25:
        return "easy"
    if score < 50:
        return "medium"
    if score < 75:
        return "hard"
    return "very_hard"


def _template_hashtag_counts(platform: str) -> Dict[str, int]:
    """How many templates (all users) use each hashtag on a platform."""
    query = select(hashtag_templates.c.hashtags)
    if platform != "all":
        query = query.where(hashtag_templates.c.platform.in_([platform, "all"]))

    counts: Dict[str, int] = {}
    with get_db_session() as session:
        for row in session.execute(query):
            seen = {normalize_hashtag(tag).lower() for tag in (row.hashtags or [])}
            for tag in seen:
                if tag:
                    counts[tag] = counts.get(tag, 0) + 1
    return counts


def score_hashtags(hashtags: List[str], platform: str) -> List[HashtagCompetition]:
    """
    Competition score per hashtag: how many templates on the platform use it,
    scaled 0-100 against the most used hashtag. Crowded hashtags score high.
    """
    counts = _template_hashtag_counts(platform)
    busiest = max(counts.values()) if counts else 0

    results: List[HashtagCompetition] = []
    for raw in hashtags:
        tag = normalize_hashtag(raw)
        if not tag:
            continue
        template_count = counts.get(tag.lower(), 0)
        score = round(100 * template_count / busiest) if busiest else 0
        results.append(
            HashtagCompetition(
                hashtag=tag,
                platform=platform,
                template_count=template_count,
                competition_score=score,
                difficulty=difficulty_for_score(score),
            )
        )
    return results


def analyze_hashtags(user_id: str, request: HashtagAnalysisRequest) -> GatedResult:
    """
    Run a hashtag competition analysis if hashtag_analysis quota allows it.

    Returns:
        GatedResult; result is the HashtagAnalysis when allowed
    """
    if not any(normalize_hashtag(tag) for tag in request.hashtags):
        raise ValidationError("At least one non-empty hashtag is required")

    def _analyze() -> HashtagAnalysis:
        results = score_hashtags(request.hashtags, request.platform)
        now = datetime.now(timezone.utc)
        generation_id = _store_generation(
            user_id,
            kind=KIND_HASHTAG_ANALYSIS,
            platform=request.platform,
            tone=None,
            prompt=None,
            output={"results": [r.model_dump() for r in results]},
            hashtag_count=len(results),
            created_at=now,
        )
        return HashtagAnalysis(id=generation_id, results=results, created_at=now)

    return run_gated(user_id, ResourceType.HASHTAG_ANALYSIS.value, _analyze)


def _previous_period_start(period_start: datetime) -> datetime:
    if period_start.month == 1:
        return period_start.replace(year=period_start.year - 1, month=12)
    return period_start.replace(month=period_start.month - 1)


def _hashtag_total(session, user_id: str, start: datetime, end: datetime) -> int:
    return session.execute(
        select(func.coalesce(func.sum(generations.c.hashtag_count), 0))
        .where(generations.c.user_id == user_id)
        .where(generations.c.created_at >= start)
        .where(generations.c.created_at < end)
    ).scalar_one()


def get_hashtag_stats(user_id: str, now: Optional[datetime] = None) -> HashtagStats:
    """
    Hashtags generated this month and the change from last month.

    percentage_change is 0.0 when both months are empty and 100.0 when
    only the current month has any.
    """
    start = current_period_start(now)
    previous_start = _previous_period_start(start)
    end = start.replace(year=start.year + 1, month=1) if start.month == 12 else start.replace(month=start.month + 1)

    with get_db_session() as session:
        total = int(_hashtag_total(session, user_id, start, end))
        previous = int(_hashtag_total(session, user_id, previous_start, start))

    if previous == 0:
        change = 100.0 if total > 0 else 0.0
    else:
        change = round((total - previous) / previous * 100, 1)

    return HashtagStats(total=total, previous_total=previous, percentage_change=change)
