import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from clientdesk.core.config import settings
from clientdesk.core.errors import ConcurrentUpdateConflict, StoreUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine whose connection checkout and statements are time-bounded"""
    timeout_seconds = settings.DB_STATEMENT_TIMEOUT_MS / 1000
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
        return create_engine(database_url, connect_args=connect_args, **kwargs)

    connect_args = {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    return create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        **kwargs,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block as one unit, or nothing at all.

    Version-counter mismatches become ``ConcurrentUpdateConflict`` and driver
    or pool failures become ``StoreUnavailable``; other errors propagate
    unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentUpdateConflict(
            "The record was modified by another request, reload and retry"
        ) from exc
    except (OperationalError, PoolTimeoutError) as exc:
        db.rollback()
        logger.error(f"Store operation failed: {exc}")
        raise StoreUnavailable("The data store is unavailable, retry later") from exc
    except Exception:
        db.rollback()
        raise


def enum_values(enum_cls) -> list:
    """Persist enum members by value ("in-progress") rather than by name"""
    return [member.value for member in enum_cls]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
