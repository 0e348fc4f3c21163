from fastapi import APIRouter, Depends
from schemas.auth_schema import LoginRequest, OtpCompleted, OtpIssued, OtpRequest, PasswordResetRequest, SignupVerifyRequest, Token
from services.auth_service import complete_signup, login_user, request_password_reset_otp, request_signup_otp, reset_password
from api.dependencies import get_mailer
from utils.email import Mailer
from utils.responses import no_store_json
from utils.timing import timeit
from db.session import get_db_session
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth")

@router.post("/signup/request-otp", response_model=OtpIssued)
@timeit()
async def signup_request_otp(payload: OtpRequest, mailer: Mailer = Depends(get_mailer), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await request_signup_otp(payload.email, mailer, db))

@router.post("/signup/verify-otp", response_model=OtpCompleted)
@timeit()
async def signup_verify_otp(payload: SignupVerifyRequest, db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await complete_signup(payload.email, payload.password, payload.code, payload.name, db))

@router.post("/forgot-password/request-otp", response_model=OtpIssued)
@timeit()
async def forgot_password_request_otp(payload: OtpRequest, mailer: Mailer = Depends(get_mailer), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await request_password_reset_otp(payload.email, mailer, db))

@router.post("/forgot-password/reset", response_model=OtpCompleted)
@timeit()
async def forgot_password_reset(payload: PasswordResetRequest, db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await reset_password(payload.email, payload.password, payload.code, db))

@router.post("/login", response_model=Token)
@timeit()
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await login_user(payload.email, payload.password, db))
