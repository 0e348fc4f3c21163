from typing import Dict, List, Optional
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.config import settings
from core.exceptions import BadRequestError, NotFoundError, ServiceError
from db.models.mixins import isoformat_utc, new_id, utcnow
from db.models.submission import SUBMISSION_MODELS, SUBMISSION_STATUSES
from db.models.user import User as UserModel
from db.session import get_or_use_session
from schemas.submission_schema import SubmissionCreate
from schemas.user_schema import CurrentUser
from utils.db import safe_commit
from utils.timing import timeit

logger = logging.getLogger(__name__)

# Request field -> column, in the order missing fields are reported
REQUIRED_FIELDS = {
    "fullName": "full_name",
    "phoneNumber": "phone_number",
    "woreda": "woreda",
    "kebele": "kebele",
    "village": "village",
    "identityDocumentUrl": "identity_document_url",
    "homeMapUrl": "home_map_url",
}


def _serialize(row, kind: str) -> dict:
    return {
        "id": row.id,
        "userId": row.user_id,
        "fullName": row.full_name,
        "phoneNumber": row.phone_number,
        "woreda": row.woreda,
        "kebele": row.kebele,
        "village": row.village,
        "identityDocumentUrl": row.identity_document_url,
        "homeMapUrl": row.home_map_url,
        "status": row.status,
        "statusUpdatedByUserId": row.status_updated_by_user_id,
        "statusUpdatedAt": isoformat_utc(row.status_updated_at),
        "createdAt": isoformat_utc(row.created_at),
        "updatedAt": isoformat_utc(row.updated_at),
        "type": kind,
    }


def _model_for(kind: Optional[str]):
    model = SUBMISSION_MODELS.get(kind or "")
    if model is None:
        raise BadRequestError("Invalid type. Must be sell or lessor")
    return model


def validate_submission(payload: SubmissionCreate) -> Dict[str, str]:
    """Return trimmed column values, or raise 400 naming what is missing or invalid."""
    raw = payload.model_dump(by_alias=True)
    missing = [field for field in REQUIRED_FIELDS if not (raw.get(field) or "").strip()]
    if missing:
        raise BadRequestError(f"All fields are required. Missing: {', '.join(missing)}")

    values = {column: raw[field].strip() for field, column in REQUIRED_FIELDS.items()}
    host = settings.UPLOAD_URL_HOST
    if host not in values["identity_document_url"]:
        raise BadRequestError("Invalid identity document URL. Please upload a valid document.")
    if host not in values["home_map_url"]:
        raise BadRequestError("Invalid home map URL. Please upload a valid document.")
    return values


@timeit("create_submission")
async def create_submission(kind: str, payload: SubmissionCreate, current_user: CurrentUser, db: AsyncSession = None):
    model = _model_for(kind)
    values = validate_submission(payload)
    try:
        async with get_or_use_session(db) as _db:
            now = utcnow()
            submission = model(
                id=new_id(),
                user_id=current_user.id,
                status="pending",
                created_at=now,
                updated_at=now,
                **values,
            )
            _db.add(submission)
            await safe_commit(_db, client_error_message="Database constraint error",
                              server_error_message="Failed to save submission")
            logger.info(f"Created {kind} submission {submission.id}")
            return {"message": "Submission created successfully", "id": submission.id}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating {kind} submission: {e}")
        raise ServiceError("Failed to save submission")


@timeit("list_user_submissions")
async def list_user_submissions(user_id: str, db: AsyncSession = None) -> Dict[str, List[dict]]:
    async with get_or_use_session(db) as _db:
        out = {}
        for kind, model in SUBMISSION_MODELS.items():
            result = await _db.execute(
                select(model).where(model.user_id == user_id).order_by(model.created_at.desc())
            )
            out[kind] = [_serialize(row, kind) for row in result.scalars().all()]
        return out


@timeit("list_all_submissions")
async def list_all_submissions(db: AsyncSession = None) -> Dict[str, List[dict]]:
    """Every submission with the submitter's and last reviewer's details."""
    submitter = aliased(UserModel)
    reviewer = aliased(UserModel)
    async with get_or_use_session(db) as _db:
        out = {}
        for kind, model in SUBMISSION_MODELS.items():
            result = await _db.execute(
                select(model, submitter.email, submitter.name, reviewer.email)
                .join(submitter, submitter.id == model.user_id)
                .outerjoin(reviewer, reviewer.id == model.status_updated_by_user_id)
                .order_by(model.created_at.desc())
            )
            rows = []
            for row, email, user_name, reviewer_email in result.all():
                item = _serialize(row, kind)
                item.update(email=email, userName=user_name, statusUpdatedByEmail=reviewer_email)
                rows.append(item)
            out[kind] = rows
        return out


@timeit("update_submission_status")
async def update_submission_status(submission_id: str, status: Optional[str], kind: Optional[str], reviewer: CurrentUser, db: AsyncSession = None):
    if status not in SUBMISSION_STATUSES:
        raise BadRequestError("Invalid status. Must be pending, accepted, or rejected")
    model = _model_for(kind)
    try:
        async with get_or_use_session(db) as _db:
            submission = await _db.get(model, submission_id)
            if submission is None:
                raise NotFoundError("Submission not found")

            now = utcnow()
            submission.status = status
            submission.status_updated_by_user_id = reviewer.id
            submission.status_updated_at = now
            submission.updated_at = now
            await safe_commit(_db, server_error_message="Failed to update status")
            logger.info(f"{kind} submission {submission_id} marked {status} by {reviewer.id}")
            return {"message": "Status updated successfully", "id": submission_id, "status": status}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating submission status: {e}")
        raise ServiceError("Failed to update status")
