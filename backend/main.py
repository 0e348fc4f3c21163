from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from api.v1 import auth, users, admin, submissions
from core.config import settings
from db.base import initialize_database
from db.session import engine, SessionLocal
from sqlalchemy import text
from utils.email import Mailer
from utils.logging_config import configure_logging, RequestContextMiddleware
from utils.responses import message_json

# Configure logging with date-based files and TTL retention
logger = configure_logging("homeconnect")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG
)

# Every error body is {"message": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return message_json(exc.detail, exc.status_code, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "Invalid request")
    logger.info(f"Rejected request body at {request.url.path}: {errors}")
    return message_json(f"{field}: {detail}" if field else detail, 400)

# Global exception handler to ensure 500s for unexpected errors
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error at {request.url.path}: {exc}")
    return message_json("Internal server error", 500)

# Add GZip compression for larger JSON payloads
app.add_middleware(GZipMiddleware, minimum_size=500)

# Add logging context middleware to capture user_id and API path
app.add_middleware(RequestContextMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, tags=["Authentication"])
app.include_router(users.router, tags=["Users"])
app.include_router(admin.router, tags=["Admin"])
app.include_router(submissions.router, tags=["Submissions"])

@app.on_event("startup")
async def startup():
    """Fail fast on missing mail settings, then make sure tables exist."""
    app.state.mailer = Mailer.from_settings(settings)
    await initialize_database()
    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown():
    await engine.dispose()
    logger.info("Application shutdown complete")

@app.get("/")
async def root():
    return {"message": settings.APP_NAME, "version": settings.VERSION}

@app.get("/health")
async def health_check():
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        db_status = "sql_connected"
    except Exception as e:
        logger.warning(f"Health SQL check failed: {e}")
        db_status = "sql_unavailable"
    return {"status": "healthy" if db_status == "sql_connected" else "degraded", "database": db_status}
