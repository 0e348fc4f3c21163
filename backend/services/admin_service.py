from typing import Optional
import logging

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, NotFoundError, ServiceError
from core.roles import ADMIN_ROLE, AGENT_ROLE, DEFAULT_ROLE, normalize_role
from db.models.mixins import isoformat_utc, utcnow
from db.models.user import User as UserModel
from db.session import get_or_use_session
from services.auth_service import get_user_by_email
from services.otp_service import is_valid_email, normalize_email
from utils.db import safe_commit
from utils.timing import timeit

logger = logging.getLogger(__name__)


def _agent_dict(user: UserModel, role: Optional[str] = None) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": role or user.role,
        "createdAt": isoformat_utc(user.created_at),
        "updatedAt": isoformat_utc(user.updated_at),
    }


@timeit("list_agents")
async def list_agents(db: AsyncSession = None):
    async with get_or_use_session(db) as _db:
        result = await _db.execute(
            select(UserModel)
            .where(func.lower(UserModel.role) == AGENT_ROLE)
            .order_by(UserModel.created_at.desc())
        )
        return {"agents": [_agent_dict(u) for u in result.scalars().all()]}


@timeit("assign_agent")
async def assign_agent(email: Optional[str], db: AsyncSession = None):
    """Promote an existing user to the agent role."""
    if not email or not email.strip():
        raise BadRequestError("Email is required")
    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise BadRequestError("Please provide a valid email address")
    try:
        async with get_or_use_session(db) as _db:
            user = await get_user_by_email(_db, normalized)
            if user is None:
                raise NotFoundError(f"No user found with email: {normalized}")

            current_role = normalize_role(user.role)
            if current_role == ADMIN_ROLE:
                raise BadRequestError("Administrators cannot be converted to agents")
            if current_role == AGENT_ROLE:
                return {"message": f"{user.email} is already an agent", "agent": _agent_dict(user, AGENT_ROLE)}

            user.role = AGENT_ROLE
            user.updated_at = utcnow()
            await safe_commit(_db, server_error_message="Failed to update user role. Please try again.")
            logger.info(f"Agent role assigned to {user.id} (previous role {current_role})")
            return {"message": f"{user.email} is now an agent", "agent": _agent_dict(user, AGENT_ROLE)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error assigning agent role: {e}")
        raise ServiceError("Failed to assign agent role. Please try again.")


@timeit("revoke_agent")
async def revoke_agent(user_id: str, db: AsyncSession = None):
    """Return an agent to the default user role."""
    if not user_id:
        raise BadRequestError("User id is required")
    try:
        async with get_or_use_session(db) as _db:
            user = await _db.get(UserModel, user_id)
            if user is None:
                raise NotFoundError("User not found")

            current_role = normalize_role(user.role)
            if current_role == ADMIN_ROLE:
                raise BadRequestError("Administrators cannot be downgraded")
            if current_role == DEFAULT_ROLE:
                return {"message": "User is not currently an agent"}

            user.role = DEFAULT_ROLE
            user.updated_at = utcnow()
            await safe_commit(_db, server_error_message="Failed to update user role. Please try again.")
            logger.info(f"Agent role revoked from {user.id}")
            return {"message": f"{user.email} is no longer an agent"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error revoking agent role: {e}")
        raise ServiceError("Failed to update user role. Please try again.")
