"""Tests for the usage counter store."""
import logging
from datetime import datetime, timezone

from sqlalchemy import insert, select

from socialgen.core.database import get_db_session, usage_counters
from socialgen.features.usage.service import (
    current_period_start,
    get_count,
    get_counts_by_period,
    increment_if_below_limit,
    list_counters,
)


NOW = datetime(2026, 3, 15, 12, 30, tzinfo=timezone.utc)


def _seed_count(user_id, resource_type, count, now=NOW):
    with get_db_session() as session:
        session.execute(
            insert(usage_counters).values(
                user_id=user_id,
                resource_type=resource_type,
                period_start=current_period_start(now),
                count=count,
            )
        )


def _row_count(user_id, resource_type):
    with get_db_session() as session:
        return session.execute(
            select(usage_counters.c.count)
            .where(usage_counters.c.user_id == user_id)
            .where(usage_counters.c.resource_type == resource_type)
        ).scalar_one_or_none()


def test_period_start_is_first_of_month_utc():
    start = current_period_start(datetime(2026, 3, 31, 23, 59, 59, tzinfo=timezone.utc))
    assert start == datetime(2026, 3, 1, tzinfo=timezone.utc)


def test_naive_now_is_treated_as_utc():
    assert current_period_start(datetime(2026, 7, 4, 8)) == datetime(2026, 7, 1, tzinfo=timezone.utc)


def test_first_increment_creates_row():
    result = increment_if_below_limit("u1", "caption_generation", 20, now=NOW)
    assert result.accepted is True
    assert result.new_count == 1
    assert get_count("u1", "caption_generation", now=NOW) == 1


def test_increment_below_limit_adds_one():
    _seed_count("u1", "caption_generation", 7)
    result = increment_if_below_limit("u1", "caption_generation", 20, now=NOW)
    assert result.accepted is True
    assert result.new_count == 8


def test_increment_at_limit_is_rejected_and_unchanged():
    _seed_count("u1", "caption_generation", 20)
    result = increment_if_below_limit("u1", "caption_generation", 20, now=NOW)
    assert result.accepted is False
    assert result.new_count == 20
    assert _row_count("u1", "caption_generation") == 20


def test_zero_limit_never_writes():
    result = increment_if_below_limit("u1", "template_creation", 0, now=NOW)
    assert result.accepted is False
    assert result.new_count == 0
    assert _row_count("u1", "template_creation") is None


def test_negative_count_is_repaired(caplog):
    _seed_count("u1", "hashtag_analysis", -5)
    with caplog.at_level(logging.WARNING):
        result = increment_if_below_limit("u1", "hashtag_analysis", 20, now=NOW)
    assert result.accepted is True
    assert result.new_count == 1
    assert any(getattr(r, "error_code", None) == "inconsistent_state" for r in caplog.records)


def test_null_count_reads_as_zero(caplog):
    _seed_count("u1", "hashtag_analysis", None)
    with caplog.at_level(logging.WARNING):
        assert get_count("u1", "hashtag_analysis", now=NOW) == 0
    assert any(getattr(r, "error_code", None) == "inconsistent_state" for r in caplog.records)
    # Reading never repairs
    assert _row_count("u1", "hashtag_analysis") is None


def test_get_count_missing_row_is_zero():
    assert get_count("nobody", "caption_generation", now=NOW) == 0


def test_periods_are_independent():
    _seed_count("u1", "caption_generation", 20)
    next_month = datetime(2026, 4, 2, tzinfo=timezone.utc)
    result = increment_if_below_limit("u1", "caption_generation", 20, now=next_month)
    assert result.accepted is True
    assert result.new_count == 1

    history = get_counts_by_period("u1", "caption_generation")
    assert list(history.values()) == [20, 1]


def test_list_counters_current_period_only():
    increment_if_below_limit("u1", "caption_generation", 20, now=NOW)
    increment_if_below_limit("u1", "template_creation", 20, now=NOW)
    increment_if_below_limit("u1", "template_creation", 20, now=datetime(2026, 2, 1, tzinfo=timezone.utc))

    counters = list_counters("u1", now=NOW)
    assert [(c.resource_type, c.count) for c in counters] == [
        ("caption_generation", 1),
        ("template_creation", 1),
    ]
