from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from core.security import bearer_scheme, verify_token
from core.exceptions import ForbiddenError, ServiceError, UnauthorizedError
from core.roles import STAFF_ROLES, is_admin, normalize_role
from schemas.user_schema import CurrentUser
from db.session import get_db_session
from db.models.user import User as UserModel
from sqlalchemy.ext.asyncio import AsyncSession
from utils.email import Mailer
from utils.logging_config import user_id_var
import logging

logger = logging.getLogger(__name__)

async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[CurrentUser]:
    """Resolve the bearer token to a user, or None for anonymous/invalid callers.

    The role always comes from the user row, so promotions and demotions take
    effect without a new token.
    """
    if credentials is None or not credentials.credentials:
        return None
    payload = verify_token(credentials.credentials)
    if not payload:
        return None

    db_user = await db.get(UserModel, payload.get("sub"))
    if db_user is None:
        logger.info("Bearer token refers to a user that no longer exists")
        return None

    user_id_var.set(db_user.id)
    return CurrentUser(
        id=db_user.id,
        email=db_user.email,
        name=db_user.name,
        role=normalize_role(db_user.role),
    )

async def get_current_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise UnauthorizedError("Unauthorized")
    return user

async def admin_required(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None or not is_admin(user.role):
        raise ForbiddenError("Not authorized")
    return user

async def staff_required(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Agents and admins review submissions."""
    if user.role not in STAFF_ROLES:
        raise ForbiddenError("Forbidden")
    return user

def get_mailer(request: Request) -> Mailer:
    mailer = getattr(request.app.state, "mailer", None)
    if mailer is None:
        logger.error("Mailer requested before application startup configured it")
        raise ServiceError("Email service is not configured")
    return mailer
