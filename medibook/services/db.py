"""Database session management utilities."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from medibook.utils.config import get_settings

settings = get_settings()


def build_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    if url.startswith("sqlite"):
        return create_engine(
            url,
            future=True,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, future=True, echo=False, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@contextmanager
def get_session() -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency wrapping ``get_session``."""

    with get_session() as session:
        yield session


def init_db() -> None:
    """Create any missing tables."""

    from medibook.models import Base

    Base.metadata.create_all(bind=engine)
