"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support (SQLite file databases)
- Table definitions for plans, usage counters, templates and generations
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, Text, Index, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.pool import QueuePool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from socialgen.core.config import settings
from socialgen.core.errors import StoreUnavailableError


logger = logging.getLogger("socialgen")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Seconds a SQLite writer waits on the database lock before failing
SQLITE_BUSY_TIMEOUT = 30

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if _engine is not None:
        _engine.dispose()

    if url.startswith("sqlite"):
        # SQLite serializes writers; wait on the lock instead of failing fast
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
            echo=False,
        )
    else:
        # Create engine with connection pooling
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL query logging
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the engine (tests, shutdown)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Commits on success and rolls back on error. Connection-level failures
    are re-raised as StoreUnavailableError so callers fail closed without
    depending on driver exceptions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except (OperationalError, InterfaceError) as exc:
        session.rollback()
        raise StoreUnavailableError(f"Database unavailable: {exc.__class__.__name__}") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def insert_ignore(table: Table):
    """INSERT that silently skips rows hitting a unique constraint.

    Uses the dialect's ON CONFLICT DO NOTHING so the statement is a single
    write and never raises IntegrityError on a concurrent duplicate.
    """
    dialect = get_engine().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing()
    raise NotImplementedError(f"insert_ignore not supported for dialect {dialect}")


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with get_engine().connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except (OperationalError, InterfaceError, ValueError) as exc:
        logger.warning("Database connection check failed", extra={"error": exc.__class__.__name__})
        return False


# Users table
users = Table(
    'app_users',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('display_name', Text, nullable=True),
    Column('status', String(50), nullable=False, server_default='active'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
)

# Subscriptions: one row per provider subscription, never deleted
subscriptions = Table(
    'subscriptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('tier', String(50), nullable=False),
    Column('status', String(50), nullable=False, index=True),  # active, canceled, past_due
    Column('provider_subscription_id', String(100), nullable=True, unique=True),
    Column('current_period_start', DateTime(timezone=True), nullable=True),
    Column('current_period_end', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # Composite index for the resolver lookup: (user_id, status)
    Index('idx_subscriptions_user_status', 'user_id', 'status'),
    # At most one active subscription per user
    Index(
        'uq_subscriptions_user_active',
        'user_id',
        unique=True,
        postgresql_where=text("status = 'active'"),
        sqlite_where=text("status = 'active'"),
    ),
)

# Subscription status transitions (append-only audit trail)
subscription_events = Table(
    'subscription_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('subscription_id', Integer, ForeignKey('subscriptions.id'), nullable=False, index=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('tier', String(50), nullable=False),
    Column('from_status', String(50), nullable=True),
    Column('to_status', String(50), nullable=False),
    Column('provider_event_id', String(100), nullable=True, unique=True),
    Column('occurred_at', DateTime(timezone=True), nullable=False),
    Index('idx_subscription_events_user_occurred', 'user_id', 'occurred_at'),
)

# Usage counters: one row per (user, resource_type, period)
usage_counters = Table(
    'usage_counters',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('resource_type', String(100), nullable=False),
    Column('period_start', DateTime(timezone=True), nullable=False),
    Column('count', Integer, nullable=True, server_default='0'),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    UniqueConstraint('user_id', 'resource_type', 'period_start', name='uq_usage_counters_user_type_period'),
    Index('idx_usage_counters_user_period', 'user_id', 'period_start'),
)

# Hashtag templates
hashtag_templates = Table(
    'hashtag_templates',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('name', Text, nullable=False),
    Column('description', Text, nullable=True),
    Column('hashtags', JSON, nullable=False),
    Column('category', String(100), nullable=True),
    Column('platform', String(20), nullable=False, server_default='all'),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    # Composite index for list pattern: (user_id, created_at)
    Index('idx_hashtag_templates_user_created', 'user_id', 'created_at'),
    Index('idx_hashtag_templates_user_category', 'user_id', 'category'),
)

# Generations (captions, hashtag analyses)
generations = Table(
    'generations',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('kind', String(50), nullable=False),
    Column('platform', String(20), nullable=True),
    Column('tone', String(50), nullable=True),
    Column('prompt', Text, nullable=True),
    Column('output', JSON, nullable=False),
    Column('hashtag_count', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_generations_user_kind_created', 'user_id', 'kind', 'created_at'),
)

# Application settings (JSON blobs keyed by section)
app_settings = Table(
    'app_settings',
    metadata,
    Column('key', String(100), primary_key=True),
    Column('value', JSON, nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)
