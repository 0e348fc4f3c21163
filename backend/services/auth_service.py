from datetime import timedelta
from typing import Optional
import logging

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import BadRequestError, ConflictError, NotFoundError, ServiceError, UnauthorizedError
from core.roles import DEFAULT_ROLE, normalize_role
from core.security import create_access_token, get_password_hash, verify_password
from db.models.account import Account, CREDENTIAL_PROVIDER
from db.models.mixins import isoformat_utc, new_id, utcnow
from db.models.user import User as UserModel
from db.session import get_or_use_session
from services.otp_service import (
    OtpPurpose,
    check_otp,
    discard_verification,
    is_valid_email,
    issue_otp,
    normalize_email,
    otp_expiry,
)
from utils.db import safe_commit
from utils.email import Mailer
from utils.timing import timeit

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "An account already exists for this email"
GENERIC_RESET_MESSAGE = "If an account exists with this email, a password reset code has been sent"
MISSING_FIELDS_MESSAGE = "Email, password, and verification code are required"
INVALID_LOGIN_MESSAGE = "Invalid email or password"


def _require_email(email: Optional[str]) -> str:
    """Normalize email or raise 400 before touching the database."""
    if not email or not email.strip():
        raise BadRequestError("Email is required")
    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise BadRequestError("Please provide a valid email")
    return normalized


def _check_password_length(password: str) -> None:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise BadRequestError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(func.lower(UserModel.email) == normalize_email(email)))
    return result.scalars().first()


async def get_credential_account(db: AsyncSession, user_id: str) -> Optional[Account]:
    result = await db.execute(
        select(Account).where(Account.user_id == user_id, Account.provider_id == CREDENTIAL_PROVIDER)
    )
    return result.scalars().first()


@timeit("request_signup_otp")
async def request_signup_otp(email: Optional[str], mailer: Mailer, db: AsyncSession = None):
    """Email a signup code to an address that has no account yet."""
    normalized = _require_email(email)
    try:
        async with get_or_use_session(db) as _db:
            if await get_user_by_email(_db, normalized) is not None:
                raise ConflictError(EMAIL_TAKEN_MESSAGE)
            expires_at = await issue_otp(_db, normalized, OtpPurpose.SIGNUP, mailer.send_otp_email)
            return {"message": "Verification code sent", "expiresAt": isoformat_utc(expires_at)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error issuing signup OTP: {e}")
        raise ServiceError("Failed to send verification code")


@timeit("complete_signup")
async def complete_signup(email: Optional[str], password: Optional[str], code: Optional[str], name: Optional[str] = None, db: AsyncSession = None):
    """Verify the signup code and create the user with a password credential."""
    if not email or not password or not code:
        raise BadRequestError(MISSING_FIELDS_MESSAGE)
    _check_password_length(password)
    normalized = normalize_email(email)
    try:
        async with get_or_use_session(db) as _db:
            record = await check_otp(_db, normalized, code, OtpPurpose.SIGNUP)
            record_id = record.id

            # Someone may have registered this email since the code was issued
            if await get_user_by_email(_db, normalized) is not None:
                await discard_verification(_db, record_id)
                raise ConflictError(EMAIL_TAKEN_MESSAGE)

            now = utcnow()
            user = UserModel(
                id=new_id(),
                name=(name or "").strip() or normalized.split("@")[0],
                email=normalized,
                email_verified=True,
                role=DEFAULT_ROLE,
                created_at=now,
                updated_at=now,
            )
            _db.add(user)
            try:
                await _db.flush()
                _db.add(Account(
                    id=new_id(),
                    account_id=user.id,
                    provider_id=CREDENTIAL_PROVIDER,
                    user_id=user.id,
                    password=get_password_hash(password),
                    created_at=now,
                    updated_at=now,
                ))
                await _db.delete(record)
                await _db.commit()
            except IntegrityError as e:
                # Lost the race against a concurrent signup for the same email
                await _db.rollback()
                logger.warning(f"Signup for {normalized} hit a uniqueness conflict: {e}")
                await discard_verification(_db, record_id)
                raise ConflictError(EMAIL_TAKEN_MESSAGE) from e

            logger.info(f"Created account {user.id} via signup OTP")
            return {"message": "Account created successfully", "email": normalized}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error completing signup: {e}")
        raise ServiceError("Failed to complete sign up. Please try again")


@timeit("request_password_reset_otp")
async def request_password_reset_otp(email: Optional[str], mailer: Mailer, db: AsyncSession = None):
    """Email a reset code when the account has a password login.

    The response is identical whether or not the account exists.
    """
    normalized = _require_email(email)
    try:
        async with get_or_use_session(db) as _db:
            user = await get_user_by_email(_db, normalized)
            account = await get_credential_account(_db, user.id) if user is not None else None
            if account is None:
                logger.info("Password reset requested for an address without a password login")
                return {"message": GENERIC_RESET_MESSAGE, "expiresAt": isoformat_utc(otp_expiry())}

            expires_at = await issue_otp(_db, normalized, OtpPurpose.PASSWORD_RESET, mailer.send_password_reset_email)
            return {"message": GENERIC_RESET_MESSAGE, "expiresAt": isoformat_utc(expires_at)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error issuing password reset OTP: {e}")
        raise ServiceError("Failed to send password reset code")


@timeit("reset_password")
async def reset_password(email: Optional[str], password: Optional[str], code: Optional[str], db: AsyncSession = None):
    """Verify the reset code and replace the stored password hash."""
    if not email or not password or not code:
        raise BadRequestError(MISSING_FIELDS_MESSAGE)
    _check_password_length(password)
    normalized = normalize_email(email)
    try:
        async with get_or_use_session(db) as _db:
            record = await check_otp(
                _db, normalized, code, OtpPurpose.PASSWORD_RESET,
                not_found_message="No password reset request found for this email",
            )

            user = await get_user_by_email(_db, normalized)
            if user is None:
                await discard_verification(_db, record.id)
                raise NotFoundError("User not found")

            account = await get_credential_account(_db, user.id)
            if account is None:
                await discard_verification(_db, record.id)
                raise BadRequestError("This account does not use password authentication")

            account.password = get_password_hash(password)
            account.updated_at = utcnow()
            await _db.delete(record)
            await safe_commit(_db, client_error_message="Invalid reset password request",
                              server_error_message="Failed to reset password. Please try again")

            logger.info(f"Password reset for account {account.id}")
            return {"message": "Password reset successfully", "email": normalized}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error resetting password: {e}")
        raise ServiceError("Failed to reset password. Please try again")


@timeit("login_user")
async def login_user(email: Optional[str], password: Optional[str], db: AsyncSession = None):
    """Check an email/password pair against the credential login and issue a bearer token."""
    if not email or not password:
        raise BadRequestError("Email and password are required")
    normalized = normalize_email(email)
    try:
        async with get_or_use_session(db) as _db:
            user = await get_user_by_email(_db, normalized)
            account = await get_credential_account(_db, user.id) if user is not None else None
            if account is None or not verify_password(password, account.password):
                raise UnauthorizedError(INVALID_LOGIN_MESSAGE)

            role = normalize_role(user.role)
            access_token = create_access_token(
                data={"sub": user.id, "email": user.email, "role": role},
                expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            )
            return {
                "access_token": access_token,
                "token_type": "bearer",
                "user": {
                    "id": user.id,
                    "email": user.email,
                    "name": user.name,
                    "role": role,
                },
            }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error logging in user: {e}")
        raise ServiceError("Internal server error")
