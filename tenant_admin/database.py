"""
Database engine, session factory and declarative base.
"""

from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings, get_settings

Base = declarative_base()

SessionLocal = sessionmaker(autoflush=False)

_engine: Optional[Engine] = None


def build_engine(settings: Settings) -> Engine:
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings())
        SessionLocal.configure(bind=_engine)
    return _engine


def get_db() -> Generator[Session, None, None]:
    """Request-scoped database session"""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """Create all tables"""
    from . import models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=engine or get_engine())
