from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from etuition.core import config


def build_engine(database_url: str, **kwargs) -> Engine:
    if database_url.startswith('sqlite'):
        kwargs.setdefault('connect_args', {'check_same_thread': False})
    return create_engine(database_url, echo=config.SQL_ECHO, **kwargs)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def init_database(bind: Engine | None = None) -> None:
    # Models must be imported so their tables are registered on Base.metadata.
    from etuition.models import application, payment, tuition, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
