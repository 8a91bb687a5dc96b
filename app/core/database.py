"""PostgreSQL connection and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings


def engine_options(config: Settings) -> dict[str, Any]:
    """Engine keyword arguments with bounded connect, statement and pool waits."""
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": config.DEBUG}
    if config.DATABASE_URL.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        return options
    options["pool_timeout"] = config.DB_POOL_TIMEOUT_SEC
    options["connect_args"] = {
        "connect_timeout": config.DB_CONNECT_TIMEOUT_SEC,
        "options": f"-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}",
    }
    return options


engine = create_engine(settings.DATABASE_URL, **engine_options(settings))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
