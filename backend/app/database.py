from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    options: dict = {"echo": settings.debug, "future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        return options
    # pool_size: connections kept open, max_overflow: extra ones created on demand
    options["pool_size"] = 10
    options["max_overflow"] = 20
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def init_db() -> None:
    """Create any missing tables on the configured engine."""

    from app.models import Base

    Base.metadata.create_all(engine)
