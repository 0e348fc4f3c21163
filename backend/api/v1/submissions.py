from fastapi import APIRouter, Depends
from api.dependencies import get_current_user, staff_required
from schemas.submission_schema import SubmissionCreate, SubmissionCreated, SubmissionStatusUpdate, SubmissionsByType
from schemas.user_schema import CurrentUser
from services.submission_service import create_submission, list_all_submissions, list_user_submissions, update_submission_status
from db.session import get_db_session
from sqlalchemy.ext.asyncio import AsyncSession
from utils.responses import no_store_json
from utils.timing import timeit

router = APIRouter()

@router.post("/sell/submit", response_model=SubmissionCreated, status_code=201)
@timeit()
async def submit_sell(payload: SubmissionCreate, current_user: CurrentUser = Depends(get_current_user), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await create_submission("sell", payload, current_user, db), status_code=201)

@router.post("/lessor/submit", response_model=SubmissionCreated, status_code=201)
@timeit()
async def submit_lessor(payload: SubmissionCreate, current_user: CurrentUser = Depends(get_current_user), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await create_submission("lessor", payload, current_user, db), status_code=201)

@router.get("/submissions/my", response_model=SubmissionsByType)
@timeit()
async def my_submissions(current_user: CurrentUser = Depends(get_current_user), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await list_user_submissions(current_user.id, db))

@router.get("/submissions/all", response_model=SubmissionsByType)
@timeit()
async def all_submissions(current_user: CurrentUser = Depends(staff_required), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await list_all_submissions(db))

@router.patch("/submissions/{submission_id}/status")
@timeit()
async def set_submission_status(submission_id: str, payload: SubmissionStatusUpdate, current_user: CurrentUser = Depends(staff_required), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await update_submission_status(submission_id, payload.status, payload.type, current_user, db))
