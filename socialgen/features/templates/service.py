"""
socialgen/features/templates/service.py

Hashtag template service.

Handles:
- Template CRUD scoped to the owning user
- Quota-gated creation and duplication (template_creation)
- Category listing and usage stats for the dashboard
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4
from sqlalchemy import select, insert, update, delete, func

from socialgen.core.database import get_db_session, hashtag_templates
from socialgen.core.errors import NotFoundError, ValidationError
from socialgen.features.quota.service import get_usage, run_gated
from socialgen.models.quota import GatedResult
from socialgen.models.template import (
    HashtagTemplate,
    TemplateCreateRequest,
    TemplatePage,
    TemplateUpdateRequest,
)
from socialgen.models.usage import ResourceType, UsageSnapshot


MAX_PAGE_SIZE = 100


def _row_to_template(row) -> HashtagTemplate:
    return HashtagTemplate(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        hashtags=list(row.hashtags or []),
        category=row.category,
        platform=row.platform,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _clean_hashtags(hashtags: List[str]) -> List[str]:
    cleaned = [tag.strip() for tag in hashtags if tag and tag.strip()]
    if not cleaned:
        raise ValidationError("At least one non-empty hashtag is required")
    return cleaned


def _insert_template(
    user_id: str,
    *,
    name: str,
    description: Optional[str],
    hashtags: List[str],
    category: Optional[str],
    platform: str,
) -> HashtagTemplate:
    now = datetime.now(timezone.utc)
    template_id = str(uuid4())
    with get_db_session() as session:
        session.execute(
            insert(hashtag_templates).values(
                id=template_id,
                user_id=user_id,
                name=name,
                description=description,
                hashtags=hashtags,
                category=category,
                platform=platform,
                created_at=now,
                updated_at=now,
            )
        )
    return HashtagTemplate(
        id=template_id,
        user_id=user_id,
        name=name,
        description=description,
        hashtags=hashtags,
        category=category,
        platform=platform,
        created_at=now,
        updated_at=now,
    )


def create_template(user_id: str, request: TemplateCreateRequest) -> GatedResult:
    """
    Create a template if the user's template_creation quota allows it.

    Returns:
        GatedResult; result is the HashtagTemplate when allowed
    """
    name = request.name.strip()
    if not name:
        raise ValidationError("Template name is required")
    hashtags = _clean_hashtags(request.hashtags)
    return run_gated(
        user_id,
        ResourceType.TEMPLATE_CREATION.value,
        lambda: _insert_template(
            user_id,
            name=name,
            description=request.description,
            hashtags=hashtags,
            category=request.category,
            platform=request.platform,
        ),
    )


def get_template(user_id: str, template_id: str) -> HashtagTemplate:
    """Get a template owned by the user; NotFoundError otherwise."""
    with get_db_session() as session:
        row = session.execute(
            select(hashtag_templates)
            .where(hashtag_templates.c.id == template_id)
            .where(hashtag_templates.c.user_id == user_id)
        ).first()

    if not row:
        raise NotFoundError("Template not found")
    return _row_to_template(row)


def list_templates(
    user_id: str,
    *,
    category: Optional[str] = None,
    platform: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> TemplatePage:
    """
    List a user's templates, newest first.

    Args:
        user_id: Owner
        category: Optional exact category filter
        platform: Optional platform filter ("all" means no filter)
        limit: Page size (1..100)
        offset: Rows to skip (>= 0)
    """
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise ValidationError("offset must be >= 0")

    conditions = [hashtag_templates.c.user_id == user_id]
    if category:
        conditions.append(hashtag_templates.c.category == category)
    if platform and platform != "all":
        conditions.append(hashtag_templates.c.platform == platform)

    with get_db_session() as session:
        rows = session.execute(
            select(hashtag_templates)
            .where(*conditions)
            .order_by(hashtag_templates.c.created_at.desc(), hashtag_templates.c.id)
            .limit(limit)
            .offset(offset)
        ).all()
        total_count = session.execute(
            select(func.count()).select_from(hashtag_templates).where(*conditions)
        ).scalar_one()

    return TemplatePage(
        templates=[_row_to_template(row) for row in rows],
        total_count=total_count,
        has_more=offset + limit < total_count,
    )


def update_template(user_id: str, template_id: str, request: TemplateUpdateRequest) -> HashtagTemplate:
    """Apply a partial update; only fields that were sent change."""
    get_template(user_id, template_id)

    changes = {}
    if request.name is not None:
        if not request.name.strip():
            raise ValidationError("Template name is required")
        changes["name"] = request.name.strip()
    if "description" in request.model_fields_set:
        changes["description"] = request.description
    if request.hashtags is not None:
        changes["hashtags"] = _clean_hashtags(request.hashtags)
    if "category" in request.model_fields_set:
        changes["category"] = request.category
    if request.platform is not None:
        changes["platform"] = request.platform
    changes["updated_at"] = datetime.now(timezone.utc)

    with get_db_session() as session:
        session.execute(
            update(hashtag_templates)
            .where(hashtag_templates.c.id == template_id)
            .where(hashtag_templates.c.user_id == user_id)
            .values(**changes)
        )

    return get_template(user_id, template_id)


def delete_template(user_id: str, template_id: str) -> None:
    """Delete a template. Usage already consumed is not returned."""
    get_template(user_id, template_id)
    with get_db_session() as session:
        session.execute(
            delete(hashtag_templates)
            .where(hashtag_templates.c.id == template_id)
            .where(hashtag_templates.c.user_id == user_id)
        )


def duplicate_template(user_id: str, template_id: str) -> GatedResult:
    """
    Copy a template as "<name> (Copy)". Consumes template_creation quota.

    The source is looked up before reserving so a missing template never
    costs a unit.
    """
    original = get_template(user_id, template_id)
    return run_gated(
        user_id,
        ResourceType.TEMPLATE_CREATION.value,
        lambda: _insert_template(
            user_id,
            name=f"{original.name} (Copy)",
            description=original.description,
            hashtags=list(original.hashtags),
            category=original.category,
            platform=original.platform,
        ),
    )


def get_categories(user_id: str) -> List[str]:
    with get_db_session() as session:
        rows = session.execute(
            select(hashtag_templates.c.category)
            .where(hashtag_templates.c.user_id == user_id)
            .where(hashtag_templates.c.category.is_not(None))
            .distinct()
            .order_by(hashtag_templates.c.category)
        ).all()
    return [row.category for row in rows if row.category]


def get_usage_stats(user_id: str) -> UsageSnapshot:
    return get_usage(user_id, ResourceType.TEMPLATE_CREATION.value)
