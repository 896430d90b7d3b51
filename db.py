import threading
from collections.abc import Iterator
from contextlib import nullcontext

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from settings import settings


def _is_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if _is_memory(url):
            # one shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


engine = _make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=True, expire_on_commit=False)
Base = declarative_base()

# Sessions on the shared in-memory connection must not overlap: closing one
# rolls back whatever another has flushed. A plain Lock: FastAPI may
# enter and exit the dependency on different threads.
request_lock = threading.Lock() if _is_memory(settings.database_url) else nullcontext()


def get_db() -> Iterator[Session]:
    with request_lock:
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()


def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
