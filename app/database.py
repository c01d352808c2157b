"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite for tests). All models are imported
in create_tables() so every table is created in one call.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.errors import ConflictError
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Request handlers run in a threadpool; sessions hop threads
        return {"connect_args": {"check_same_thread": False}, "echo": False}
    return {
        "pool_pre_ping": True,       # Auto-reconnect if DB connection drops
        "pool_size": 10,
        "max_overflow": 20,
        "echo": False,               # Set True to log all SQL queries (debug only)
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Unit of work around a read-modify-write sequence.
    Commits when the block exits normally, rolls back on every other exit.
    A version mismatch or a uniqueness violation means another request won
    the race for the same visitor/pass and surfaces as ConflictError.
    """
    try:
        yield db
        db.commit()
    except (StaleDataError, IntegrityError) as e:
        db.rollback()
        logger.warning(f"Transaction rolled back on concurrent write: {e.__class__.__name__}")
        raise ConflictError() from e
    except BaseException:
        db.rollback()
        raise


def create_tables():
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.user import User                   # noqa
    from app.models.visitor import Visitor             # noqa
    from app.models.visitor_pass import Pass           # noqa
    from app.models.check_log import CheckLog          # noqa
    from app.models.appointment import Appointment     # noqa

    Base.metadata.create_all(bind=engine)
