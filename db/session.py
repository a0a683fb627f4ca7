import logging

from sqlmodel import SQLModel, Session, create_engine
from core.config import settings

logger = logging.getLogger(__name__)

if settings.is_sqlite:
    engine = create_engine(
        settings.database_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
        connect_args={
            "connect_timeout": 10,
            "options": "-c timezone=utc"
        }
    )


def init_db():
    """Create missing tables from the model metadata."""
    import models  # noqa: F401  registers every table on SQLModel.metadata

    SQLModel.metadata.create_all(engine)
    logger.info("Database schema ready (%s)", engine.url.get_backend_name())


def get_session():
    with Session(engine) as session:
        yield session
