"""
socialgen/features/usage/service.py

Usage counter store.

Handles:
- Period boundaries (calendar month, UTC)
- Atomic conditional increment (the only writer of usage_counters.count)
- Read-only counter queries
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy import select, update, and_, or_

from socialgen.core.database import get_db_session, usage_counters, insert_ignore
from socialgen.models.usage import IncrementResult, UsageCounter


logger = logging.getLogger(__name__)


def _normalize_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def current_period_start(now: Optional[datetime] = None) -> datetime:
    """
    First instant of the usage period containing `now`.

    Periods are calendar months in UTC.
    """
    now = _normalize_now(now)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _counter_key(user_id: str, resource_type: str, period_start: datetime):
    return and_(
        usage_counters.c.user_id == user_id,
        usage_counters.c.resource_type == resource_type,
        usage_counters.c.period_start == period_start,
    )


def _sanitize_count(value, *, user_id: str, resource_type: str) -> int:
    """Counts are never negative or missing; report and read as 0 if they are."""
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    logger.warning(
        "[usage] inconsistent counter, treating as 0",
        extra={
            "user_id": user_id,
            "resource_type": resource_type,
            "stored_count": value,
            "error_code": "inconsistent_state",
        },
    )
    return 0


def increment_if_below_limit(
    user_id: str,
    resource_type: str,
    limit: int,
    now: Optional[datetime] = None,
) -> IncrementResult:
    """
    Consume one unit if the current period count is below `limit`.

    All steps run in one transaction and the increment itself is a single
    conditional UPDATE, so concurrent callers can never push the count past
    `limit`. Not idempotent: every accepted call consumes one unit.

    Args:
        user_id: User consuming the resource
        resource_type: Quota bucket (template_creation, caption_generation, ...)
        limit: Entitlement limit for the current period
        now: Fixed timestamp for deterministic period selection

    Returns:
        IncrementResult(new_count, accepted). When not accepted the stored
        count is left unchanged and returned as new_count.

    Raises:
        StoreUnavailableError: If the database cannot be reached
    """
    if limit <= 0:
        return IncrementResult(new_count=get_count(user_id, resource_type, now), accepted=False)

    period_start = current_period_start(now)
    key = _counter_key(user_id, resource_type, period_start)

    with get_db_session() as session:
        # Lazily create the period row. Being a write, this also takes the
        # row (or database) lock before anything is read.
        session.execute(
            insert_ignore(usage_counters).values(
                user_id=user_id,
                resource_type=resource_type,
                period_start=period_start,
                count=0,
            )
        )

        repaired = session.execute(
            update(usage_counters)
            .where(key)
            .where(or_(usage_counters.c.count.is_(None), usage_counters.c.count < 0))
            .values(count=0)
        ).rowcount
        if repaired:
            logger.warning(
                "[usage] inconsistent counter reset to 0",
                extra={
                    "user_id": user_id,
                    "resource_type": resource_type,
                    "period_start": period_start.isoformat(),
                    "error_code": "inconsistent_state",
                },
            )

        accepted = session.execute(
            update(usage_counters)
            .where(key)
            .where(usage_counters.c.count < limit)
            .values(count=usage_counters.c.count + 1)
        ).rowcount == 1

        new_count = session.execute(
            select(usage_counters.c.count).where(key)
        ).scalar_one()

    logger.info(
        "[usage] increment accepted" if accepted else "[usage] increment rejected",
        extra={
            "user_id": user_id,
            "resource_type": resource_type,
            "limit": limit,
            "count": new_count,
        },
    )
    return IncrementResult(new_count=new_count, accepted=accepted)


def get_count(
    user_id: str,
    resource_type: str,
    now: Optional[datetime] = None,
) -> int:
    """
    Get the current period count for a resource type. Never writes.

    Args:
        user_id: User to query
        resource_type: Quota bucket
        now: Fixed timestamp for deterministic period selection

    Returns:
        Count for the period; 0 if no row exists yet
    """
    period_start = current_period_start(now)
    with get_db_session() as session:
        row = session.execute(
            select(usage_counters.c.count).where(_counter_key(user_id, resource_type, period_start))
        ).first()

    if row is None:
        return 0
    return _sanitize_count(row.count, user_id=user_id, resource_type=resource_type)


def list_counters(user_id: str, now: Optional[datetime] = None) -> List[UsageCounter]:
    """All counters of a user for the current period."""
    period_start = current_period_start(now)
    with get_db_session() as session:
        rows = session.execute(
            select(usage_counters)
            .where(usage_counters.c.user_id == user_id)
            .where(usage_counters.c.period_start == period_start)
            .order_by(usage_counters.c.resource_type)
        ).all()

    return [
        UsageCounter(
            user_id=row.user_id,
            resource_type=row.resource_type,
            period_start=period_start,
            count=_sanitize_count(row.count, user_id=user_id, resource_type=row.resource_type),
        )
        for row in rows
    ]


def get_counts_by_period(user_id: str, resource_type: str) -> Dict[datetime, int]:
    """History of a resource type across periods, keyed by period start."""
    with get_db_session() as session:
        rows = session.execute(
            select(usage_counters.c.period_start, usage_counters.c.count)
            .where(usage_counters.c.user_id == user_id)
            .where(usage_counters.c.resource_type == resource_type)
            .order_by(usage_counters.c.period_start)
        ).all()

    return {
        _normalize_now(row.period_start): _sanitize_count(row.count, user_id=user_id, resource_type=resource_type)
        for row in rows
    }
