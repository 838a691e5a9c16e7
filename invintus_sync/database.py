"""Invintus Sync - Database Engine & Session Factory."""

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy import text
from invintus_sync.config import settings
from invintus_sync.core.logging import get_logger

# Register tables on SQLModel.metadata
from invintus_sync.models import audit_models, content_models, option_models  # noqa: F401

logger = get_logger("database")

db_url = settings.effective_database_url


def _mask_url(url: str) -> str:
    """Hide the password of a DB URL before logging it."""
    if "@" not in url:
        return url
    before_at, after_at = url.split("@", 1)
    if ":" in before_at.split("//", 1)[-1]:
        return f"{before_at.rsplit(':', 1)[0]}:****@{after_at}"
    return url


if db_url.startswith("sqlite"):
    logger.info(f"Database backend: SQLite ({db_url})")
else:
    logger.info(f"Database backend: {db_url.split(':', 1)[0]} ({_mask_url(db_url)})")

engine_kwargs: dict = {"echo": False}

if db_url.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_pre_ping"] = True
    engine_kwargs["pool_size"] = 5
    engine_kwargs["max_overflow"] = 10
    engine_kwargs["pool_recycle"] = 300

engine = create_engine(db_url, **engine_kwargs)


def test_connection() -> bool:
    """Run SELECT 1 against the configured database."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection test: SUCCESS")
        return True
    except Exception as e:
        logger.error(f"Database connection test: FAILED ({e})")
        return False


def init_db() -> None:
    """Create all tables."""
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ready")


def get_session():
    """Dependency: yields a DB session."""
    with Session(engine) as session:
        yield session
