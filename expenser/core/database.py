from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from expenser.core.config import settings

# Base class for models
Base = declarative_base()

_SQLITE_PRAGMAS = (
    text("PRAGMA journal_mode=WAL"),
    text("PRAGMA synchronous=NORMAL"),
    text("PRAGMA busy_timeout=5000"),
)


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine, applying the SQLite pragmas when relevant."""
    engine = create_async_engine(database_url, echo=echo, future=True)

    if make_url(database_url).get_backend_name() == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[arg-type]
            cursor = dbapi_connection.cursor()
            for pragma in _SQLITE_PRAGMAS:
                cursor.execute(pragma.text)
                if pragma.text.startswith("PRAGMA journal_mode"):
                    cursor.fetchone()
            cursor.close()

    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG and settings.LOG_LEVEL.upper() == "DEBUG")

AsyncSessionLocal = build_session_factory(engine)


async def init_db(bind: AsyncEngine = engine) -> None:
    """Initialize database - create all tables."""
    # Registers the tables on Base.metadata.
    from expenser.domain.storage import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
