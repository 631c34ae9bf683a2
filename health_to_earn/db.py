from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings
from .models import Base

def make_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        # in-memory databases must share one connection across threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, **kwargs)
    return create_engine(url, pool_pre_ping=True, future=True)

def make_session_factory(engine: Engine) -> sessionmaker:
    # records outlive their session once handed back to the handlers
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)

def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)

@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Yields a session, rolls back on failure and always closes it.
    """
    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
