import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from momentum_engine.core.config import settings
from momentum_engine.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def _build_database_url() -> str:
    """Normalize legacy postgres:// URLs to SQLAlchemy's postgresql+psycopg2://."""
    url = settings.DATABASE_URL.strip()
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


DATABASE_URL = _build_database_url()

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # Needed for SQLite when used with FastAPI in a single process
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_operation(db: Session, operation: str) -> Iterator[None]:
    """
    Wrap a unit of store I/O. Any failure rolls the session back.
    Driver/connection failures surface as StoreUnavailableError;
    IntegrityError is re-raised for the caller, which knows which
    constraint it is guarding.
    """
    try:
        yield
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store failure during %s: %s", operation, exc)
        raise StoreUnavailableError(operation) from exc
    except Exception:
        db.rollback()
        raise
