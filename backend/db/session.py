from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy import event
from contextlib import asynccontextmanager
from core.config import settings
import logging
from typing import Optional

Base = declarative_base()
logger = logging.getLogger("homeconnect")

def _to_async_database_url(url: str) -> str:
    if not url:
        return url
    # Plain sqlite URLs get the aiosqlite driver
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("sqlite+pysqlite:///"):
        return url.replace("sqlite+pysqlite:///", "sqlite+aiosqlite:///", 1)
    return url

def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")

def build_engine(url: str):
    """Create an AsyncEngine for url, enabling SQLite foreign keys per connection."""
    async_url = _to_async_database_url(url)
    kwargs = {"future": True, "echo": False}
    if not _is_sqlite(async_url):
        kwargs.update(
            pool_pre_ping=bool(getattr(settings, "DB_PRE_PING", True)),
            pool_recycle=int(getattr(settings, "DB_POOL_RECYCLE", 300)),
        )
    new_engine = create_async_engine(async_url, **kwargs)

    if _is_sqlite(async_url):
        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            logger.debug("DB connect: id=%s", id(connection_record))

    return new_engine

ASYNC_DATABASE_URL = _to_async_database_url(settings.DATABASE_URL)

engine = build_engine(ASYNC_DATABASE_URL)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

async def get_db_session():
    async with SessionLocal() as db:
        try:
            logger.debug("DB session dependency: opened")
            yield db
        except Exception:
            # ensure we always rollback when something goes wrong
            await db.rollback()
            raise
        finally:
            logger.debug("DB session dependency: closed")

@asynccontextmanager
async def get_or_use_session(db: Optional[AsyncSession]):
    """Yield provided AsyncSession without closing it, or create one if None."""
    if db is None:
        logger.debug("DB session: creating new session")
        async with SessionLocal() as new_db:
            try:
                yield new_db
            except Exception:
                await new_db.rollback()
                raise
    else:
        logger.debug("DB session: reusing provided session")
        yield db
