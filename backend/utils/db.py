from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, DBAPIError
from core.exceptions import BadRequestError, ServiceError
import logging

logger = logging.getLogger(__name__)


async def safe_commit(session, client_error_message: str = "Invalid request", server_error_message: str = "Internal server error"):
    """Commit the unit of work; roll back and raise a 400/500 on failure."""
    try:
        await session.commit()
    except (IntegrityError, DBAPIError) as e:
        await session.rollback()
        logger.warning(f"Commit rejected by database: {e}")
        raise BadRequestError(client_error_message) from e
    except HTTPException:
        await session.rollback()
        raise
    except Exception as e:
        await session.rollback()
        logger.error(f"Commit failed: {e}")
        raise ServiceError(server_error_message) from e
