"""Tests for caption generation, hashtag analysis and hashtag stats."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import insert

from socialgen.core.database import generations, get_db_session, usage_counters
from socialgen.core.errors import ValidationError
from socialgen.features.generations.service import (
    analyze_hashtags,
    build_caption_prompt,
    difficulty_for_score,
    generate_caption,
    get_hashtag_stats,
)
from socialgen.features.generations.writer import TemplateCaptionWriter, normalize_hashtag
from socialgen.features.templates.service import create_template
from socialgen.features.usage.service import current_period_start, get_count
from socialgen.models.generation import CaptionRequest, HashtagAnalysisRequest
from socialgen.models.quota import DenialReason
from socialgen.models.template import TemplateCreateRequest


class RecordingWriter:
    def __init__(self, text="Fresh caption #ok"):
        self.text = text
        self.prompts = []

    def write(self, prompt, request):
        self.prompts.append(prompt)
        return self.text


class FailingWriter:
    def write(self, prompt, request):
        raise RuntimeError("model timeout")


def _store_generation(user_id, hashtag_count, created_at):
    with get_db_session() as session:
        session.execute(
            insert(generations).values(
                id=f"gen-{created_at.isoformat()}",
                user_id=user_id,
                kind="caption",
                output={"text": "x"},
                hashtag_count=hashtag_count,
                created_at=created_at,
            )
        )


def test_prompt_includes_platform_rules_and_inputs():
    prompt = build_caption_prompt(
        CaptionRequest(platform="linkedin", tone="Educational", context="New course", hashtags=["learning"], mentions=["acme"])
    )
    assert "educational caption" in prompt
    assert "linkedin" in prompt
    assert "Context: New course." in prompt
    assert "#learning" in prompt
    assert "@acme" in prompt
    assert "Put hashtags on the last line." in prompt


def test_template_writer_keeps_hashtags_within_limit():
    request = CaptionRequest(platform="twitter", context="x" * 500, hashtags=["one", "two"])
    text = TemplateCaptionWriter().write("", request)
    assert len(text) <= 280
    assert text.endswith("#one #two")


def test_facebook_caption_ends_with_question():
    text = TemplateCaptionWriter().write("", CaptionRequest(platform="facebook", tone="Friendly"))
    assert text.startswith("Hey friends")
    assert text.endswith("What do you think?")


def test_normalize_hashtag():
    assert normalize_hashtag("  #Big Sale ") == "#BigSale"
    assert normalize_hashtag("#") == ""


def test_generate_caption_consumes_quota_and_stores():
    writer = RecordingWriter()
    gated = generate_caption("u1", CaptionRequest(hashtags=["#ok"]), writer=writer)
    assert gated.allowed
    assert gated.result.text == "Fresh caption #ok"
    assert gated.result.hashtags == ["#ok"]
    assert len(writer.prompts) == 1
    assert get_count("u1", "caption_generation") == 1


def test_generate_caption_denied_does_not_call_writer():
    with get_db_session() as session:
        session.execute(
            insert(usage_counters).values(
                user_id="u1",
                resource_type="caption_generation",
                period_start=current_period_start(),
                count=20,
            )
        )
    writer = RecordingWriter()
    gated = generate_caption("u1", CaptionRequest(), writer=writer)
    assert not gated.allowed
    assert gated.decision.reason == DenialReason.LIMIT_REACHED
    assert writer.prompts == []


def test_writer_failure_still_counts():
    with pytest.raises(RuntimeError):
        generate_caption("u1", CaptionRequest(), writer=FailingWriter())
    assert get_count("u1", "caption_generation") == 1


def test_difficulty_buckets():
    assert difficulty_for_score(0) == "easy"
    assert difficulty_for_score(25) == "medium"
    assert difficulty_for_score(50) == "hard"
    assert difficulty_for_score(75) == "very_hard"
    assert difficulty_for_score(100) == "very_hard"


def test_analysis_scores_against_busiest_hashtag():
    create_template("a", TemplateCreateRequest(name="t1", hashtags=["#food", "#vegan"], platform="instagram"))
    create_template("b", TemplateCreateRequest(name="t2", hashtags=["#food"], platform="instagram"))
    create_template("c", TemplateCreateRequest(name="t3", hashtags=["#FOOD"], platform="twitter"))

    gated = analyze_hashtags("u1", HashtagAnalysisRequest(hashtags=["food", "#vegan", "#rare"], platform="instagram"))
    assert gated.allowed
    by_tag = {r.hashtag: r for r in gated.result.results}
    assert by_tag["#food"].template_count == 2
    assert by_tag["#food"].competition_score == 100
    assert by_tag["#food"].difficulty == "very_hard"
    assert by_tag["#vegan"].competition_score == 50
    assert by_tag["#rare"].competition_score == 0
    assert by_tag["#rare"].difficulty == "easy"
    assert get_count("u1", "hashtag_analysis") == 1


def test_analysis_requires_a_real_hashtag():
    with pytest.raises(ValidationError):
        analyze_hashtags("u1", HashtagAnalysisRequest(hashtags=["#", "  "]))
    assert get_count("u1", "hashtag_analysis") == 0


def test_hashtag_stats_month_over_month():
    now = datetime(2026, 5, 20, tzinfo=timezone.utc)
    _store_generation("u1", 4, datetime(2026, 4, 10, tzinfo=timezone.utc))
    _store_generation("u1", 3, datetime(2026, 5, 2, tzinfo=timezone.utc))
    _store_generation("u1", 3, datetime(2026, 5, 19, tzinfo=timezone.utc))

    stats = get_hashtag_stats("u1", now=now)
    assert stats.total == 6
    assert stats.previous_total == 4
    assert stats.percentage_change == 50.0


def test_hashtag_stats_edge_cases():
    now = datetime(2026, 1, 15, tzinfo=timezone.utc)
    assert get_hashtag_stats("u1", now=now).percentage_change == 0.0

    _store_generation("u1", 2, datetime(2026, 1, 3, tzinfo=timezone.utc))
    stats = get_hashtag_stats("u1", now=now)
    assert stats.previous_total == 0
    assert stats.percentage_change == 100.0


def test_unknown_tone_rejected_before_reserving():
    with pytest.raises(ValidationError):
        generate_caption("u1", CaptionRequest(tone="Sarcastic"), writer=RecordingWriter())
    assert get_count("u1", "caption_generation") == 0
