from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
from typing import List
import logging

from core.exceptions import LedgerException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./poker_ledger.db"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Food rotation: a player needs this many closed games before being ranked
    min_games_for_food: int = 3
    most_overdue_count: int = 3

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite needs check_same_thread=False because FastAPI serves sync
# endpoints from a thread pool.
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: one database session per request.

    The session is always closed when the request ends.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator: run a manager method as one atomic unit.

    Usage:
        @transactional
        def some_business_logic(db: Session, ...):
            table = Table(...)
            db.add(table)
            # no manual commit, the decorator commits

    On any exception:
        - the session is rolled back
        - the exception is re-raised for the API layer to translate

    Notes:
        - the first argument must be db: Session (or pass db= as keyword)
        - do not commit inside the decorated function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            # Ledger refusals are expected; only log unexpected failures loudly
            if isinstance(e, LedgerException):
                logger.info(f"Transaction refused in {func.__name__}: {e}")
            else:
                logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
