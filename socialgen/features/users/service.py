"""
User service.
- get_or_create_user(user_id)
- get_user(user_id)
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select

from socialgen.core.database import get_db_session, insert_ignore, users as app_users
from socialgen.models.user import User


def get_user(user_id: str) -> Optional[User]:
    with get_db_session() as session:
        row = session.execute(select(app_users).where(app_users.c.user_id == user_id)).first()
    if not row:
        return None
    return User(
        user_id=row.user_id,
        created_at=row.created_at,
        display_name=row.display_name or User.normalized_display_name(row.user_id),
        status=row.status,
    )


def get_or_create_user(user_id: str, display_name: Optional[str] = None) -> User:
    """Upsert the user row. Users start on the free plan (no subscription row)."""
    with get_db_session() as session:
        session.execute(
            insert_ignore(app_users).values(
                user_id=user_id,
                display_name=User.normalized_display_name(user_id, display_name),
                status="active",
                created_at=datetime.now(timezone.utc),
            )
        )
    return get_user(user_id)
