from db.session import Base, engine
from db.models.user import User  # noqa: F401
from db.models.account import Account  # noqa: F401
from db.models.verification import Verification  # noqa: F401
from db.models.submission import SellSubmission, LessorSubmission  # noqa: F401
import logging
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

async def initialize_database(target: AsyncEngine = None):
    """Create tables that do not exist yet."""
    target = target or engine
    try:
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise
