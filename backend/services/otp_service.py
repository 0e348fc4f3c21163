"""One-time passcode issuance and verification.

A pending passcode lives in the ``verification`` table under an identifier of
the form ``"<purpose>:<email>"``. Only the SHA-256 digest of the code is
stored, together with the number of failed attempts, as a small JSON payload.
A record is removed when the code is used, expires, runs out of attempts, or
is superseded by a newer request for the same identifier.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Tuple
import json
import logging
import re
import secrets

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.exceptions import BadRequestError, CorruptedVerificationError, EmailDeliveryError
from core.security import hash_otp
from db.models.mixins import new_id, utcnow
from db.models.verification import Verification
from utils.db import safe_commit

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

EXPIRED_MESSAGE = "Verification code has expired. Request a new code"
TOO_MANY_ATTEMPTS_MESSAGE = "Too many incorrect attempts. Request a new code"
INCORRECT_CODE_MESSAGE = "Incorrect verification code"


class OtpPurpose(str, Enum):
    SIGNUP = "signup"
    PASSWORD_RESET = "password-reset"


# Sends (email, code, expires_in_minutes); raises on transport failure
OtpSender = Callable[[str, str, int], None]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def build_identifier(purpose: OtpPurpose, email: str) -> str:
    return f"{OtpPurpose(purpose).value}:{normalize_email(email)}"


def generate_otp(length: Optional[int] = None) -> str:
    """Random numeric code of exactly `length` digits, never zero-padded."""
    length = length or settings.OTP_LENGTH
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def otp_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)


def encode_payload(code_hash: str, attempts: int = 0) -> str:
    return json.dumps({"code": code_hash, "attempts": attempts})


def decode_payload(raw: str) -> Tuple[str, int]:
    """Return (code_hash, attempts); ValueError when the stored payload is unusable."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("verification payload is not an object")
    code_hash = data.get("code")
    attempts = data.get("attempts") or 0
    if not isinstance(code_hash, str) or not code_hash:
        raise ValueError("verification payload has no code hash")
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 0:
        raise ValueError("verification payload has an invalid attempt counter")
    return code_hash, attempts


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def find_verification(db: AsyncSession, identifier: str) -> Optional[Verification]:
    result = await db.execute(select(Verification).where(Verification.identifier == identifier))
    return result.scalars().first()


async def discard_verification(db: AsyncSession, record_id: str) -> None:
    await db.execute(delete(Verification).where(Verification.id == record_id))
    await safe_commit(db, client_error_message="Could not clear verification request")


async def store_otp(db: AsyncSession, identifier: str, code: str, now: Optional[datetime] = None) -> Verification:
    """Replace any pending record for identifier with a fresh one for code."""
    now = now or utcnow()
    await db.execute(delete(Verification).where(Verification.identifier == identifier))
    record = Verification(
        id=new_id(),
        identifier=identifier,
        value=encode_payload(hash_otp(code), 0),
        expires_at=otp_expiry(now),
        created_at=now,
        updated_at=now,
    )
    db.add(record)
    await safe_commit(db, client_error_message="Could not store verification request")
    return record


async def issue_otp(db: AsyncSession, email: str, purpose: OtpPurpose, send: OtpSender) -> datetime:
    """Store a new code for (purpose, email) and email it; returns the expiry.

    The stored record is removed again when delivery fails so that no code
    the user never received stays live.
    """
    identifier = build_identifier(purpose, email)
    code = generate_otp()
    record = await store_otp(db, identifier, code)
    record_id, expires_at = record.id, record.expires_at

    try:
        await run_in_threadpool(send, normalize_email(email), code, settings.OTP_EXPIRY_MINUTES)
    except Exception as exc:
        logger.error(f"OTP delivery failed for {identifier}: {exc}")
        try:
            await discard_verification(db, record_id)
        except HTTPException as cleanup_exc:
            logger.error(f"Could not remove undelivered OTP for {identifier}: {cleanup_exc.detail}")
        if isinstance(exc, EmailDeliveryError):
            raise
        raise EmailDeliveryError(f"Failed to send verification code: {exc}") from exc

    logger.info(f"Issued {OtpPurpose(purpose).value} OTP expiring at {expires_at.isoformat()}")
    return expires_at


async def check_otp(
    db: AsyncSession,
    email: str,
    code: str,
    purpose: OtpPurpose,
    not_found_message: str = "No verification request found for this email",
) -> Verification:
    """Validate a submitted code and return the matching live record.

    Terminal failures (expired, corrupted, attempt ceiling) delete the record.
    A wrong code only bumps the attempt counter. On success the record is
    returned untouched; the caller deletes it in the same transaction as the
    follow-on write.
    """
    identifier = build_identifier(purpose, email)
    record = await find_verification(db, identifier)
    if record is None:
        raise BadRequestError(not_found_message)

    now = utcnow()
    if now > _as_naive_utc(record.expires_at):
        await discard_verification(db, record.id)
        raise BadRequestError(EXPIRED_MESSAGE)

    try:
        code_hash, attempts = decode_payload(record.value)
    except (ValueError, TypeError) as exc:
        logger.error(f"Failed to parse stored OTP payload for {identifier}: {exc}")
        await discard_verification(db, record.id)
        raise CorruptedVerificationError()

    if attempts >= settings.OTP_MAX_ATTEMPTS:
        await discard_verification(db, record.id)
        raise BadRequestError(TOO_MANY_ATTEMPTS_MESSAGE)

    if hash_otp((code or "").strip()) != code_hash:
        record.value = encode_payload(code_hash, attempts + 1)
        record.updated_at = now
        await safe_commit(db, client_error_message="Could not record verification attempt")
        logger.info(f"Incorrect OTP for {identifier} (attempt {attempts + 1})")
        raise BadRequestError(INCORRECT_CODE_MESSAGE)

    return record
