"""
Engine and session factory shared by every repository.
"""

from typing import Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


class Database:
    """
    Owns the SQLAlchemy engine for one database URL.

    In-memory SQLite is pinned to a single connection so every thread
    (FastAPI runs sync endpoints in a threadpool) sees the same data.

    Usage:
        db = Database("sqlite:///./sirened.db")
        db.create_tables()

        with db.session() as session:
            session.query(User).count()
    """

    def __init__(self, database_url: str = "sqlite:///:memory:", echo: bool = False):
        # Async drivers are not used by the repositories
        self.database_url = database_url.replace("+aiosqlite", "").replace("+asyncpg", "")
        self.engine: Engine = create_engine(self.database_url, echo=echo, **self._engine_options())
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info(f"Database initialized: {self.database_url[:50]}")

    def _engine_options(self) -> dict:
        if not self.database_url.startswith("sqlite"):
            return {"pool_pre_ping": True}

        options = {"connect_args": {"check_same_thread": False}}
        if self.is_memory:
            options["poolclass"] = StaticPool
        return options

    @property
    def is_memory(self) -> bool:
        return self.database_url in ("sqlite://", "sqlite:///:memory:")

    def session(self) -> Session:
        """Open a new session. Use as a context manager."""
        return self.SessionLocal()

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def create_database(database_url: Optional[str] = None, echo: bool = False) -> Database:
    """Create a database and make sure the schema exists."""
    database = Database(database_url or "sqlite:///:memory:", echo=echo)
    database.create_tables()
    return database
