from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from country_api.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

Base = declarative_base()


# ------------------------------------------------------------------------------
# DATABASE ENGINE & SESSION
# ------------------------------------------------------------------------------
def create_db_engine(url: str, pool_size: int = 10, pool_timeout: int = 30):
    """Build an engine whose pool bounds concurrent connections.

    Checkouts beyond ``pool_size`` wait in the pool queue for up to
    ``pool_timeout`` seconds instead of opening extra connections.
    """
    if url.startswith("sqlite"):
        # Local/test store: sessions are handed to the worker threadpool,
        # and SQLite picks its own pool class.
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,   # prevents "MySQL server has gone away" issues
        pool_recycle=280,     # helps with idle connection timeouts
        pool_size=pool_size,
        max_overflow=0,
        pool_timeout=pool_timeout,
    )


try:
    engine = create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        pool_timeout=settings.db_pool_timeout,
    )
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
except Exception as e:
    logger.error(f"❌ Failed to create SQLAlchemy engine: {e}")
    raise e


# ------------------------------------------------------------------------------
# DB DEPENDENCIES
# ------------------------------------------------------------------------------
def get_db():
    """Dependency to provide a DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """Dependency to provide the session factory for work that opens its own sessions."""
    return SessionLocal


# ------------------------------------------------------------------------------
# LIFECYCLE
# ------------------------------------------------------------------------------
def init_db(bind=None, session_factory=None):
    """Create tables and the metadata row (runs once on startup)."""
    from country_api.models import country  # noqa: F401  ensure models are registered
    from country_api.crud.country import get_or_create_metadata

    bind = bind or engine
    session_factory = session_factory or SessionLocal

    Base.metadata.create_all(bind=bind)
    db = session_factory()
    try:
        get_or_create_metadata(db)
    finally:
        db.close()
    logger.info("✅ Database tables created successfully.")


def check_connection(bind=None) -> bool:
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection test failed: {e}")
        return False


def close_db(bind=None):
    """Drain the connection pool (runs on shutdown)."""
    (bind or engine).dispose()
    logger.info("Database connections closed")
