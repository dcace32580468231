from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker


def create_db_engine(database_url: str, echo: bool = False):
    if database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(database_url, echo=echo, pool_pre_ping=True, pool_recycle=1800)


@lru_cache(maxsize=None)
def get_engine():
    """Engine for the web app, built on first use from the application settings."""
    from app.core.config import settings

    return create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


# Unbound; callers pass bind=get_engine() or their own engine
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

Base = declarative_base()
