import logging
import logging.handlers
import contextvars
import re
from pathlib import Path
from typing import List, Optional

from core.config import settings
from core.security import verify_token
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

APP_LOGGER_NAME = "homeconnect"
LOG_FORMAT = "%(levelname)s - %(asctime)s - %(user_id)s - %(api)s - %(name)s - %(message)s"

# key=value / "key": "value" pairs whose value must never reach a log file
_SECRET_PATTERN = re.compile(
    r"""(?i)(?<![A-Za-z0-9_])(["']?(?:password|code|access_token|token)["']?\s*[:=]\s*)(["']?)[^\s,"'}]+"""
)

user_id_var = contextvars.ContextVar("user_id", default="-")
api_var = contextvars.ContextVar("api", default="-")


def map_log_level(level_name: str) -> int:
    level = logging.getLevelName((level_name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


class ContextFilter(logging.Filter):
    """Stamp each record with the caller and endpoint of the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = user_id_var.get()
        record.api = api_var.get()
        return True


class RedactSecretsFilter(logging.Filter):
    """Mask passwords, passcodes and tokens that slip into a message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SECRET_PATTERN.sub(r"\1\2***", message)
        if redacted != message:
            record.msg, record.args = redacted, None
        return True


def _with_filters(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RedactSecretsFilter())
    handler.addFilter(ContextFilter())
    return handler


def _daily_file(log_dir: Path, filename: str, level: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir / filename),
        when="midnight",
        backupCount=max(int(settings.LOG_TTL_DAYS), 0),
        encoding="utf-8",
        utc=True,
    )
    handler.suffix = "%Y-%m-%d"
    return _with_filters(handler, level)


def _attach(target: logging.Logger, handlers: List[logging.Handler], level: int, propagate: bool = False) -> None:
    for h in list(target.handlers):
        target.removeHandler(h)
    for h in handlers:
        target.addHandler(h)
    target.setLevel(level)
    target.propagate = propagate


def configure_logging(app_logger_name: Optional[str] = None, log_to_files: bool = True) -> logging.Logger:
    """Send application logs to the console and, unless disabled, to daily files.

    app.log and error.log (WARNING and up) collect the application and
    framework loggers, access.log collects uvicorn access lines. Rotated files
    are kept for LOG_TTL_DAYS days.
    """
    level = map_log_level(settings.LOG_LEVEL)
    console = _with_filters(logging.StreamHandler(), level)
    app_handlers = [console]
    access_handlers = [console]

    if log_to_files:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        app_handlers = [
            _daily_file(log_dir, "app.log", level),
            _daily_file(log_dir, "error.log", logging.WARNING),
            console,
        ]
        access_handlers = [_daily_file(log_dir, "access.log", level), console]

    # Module loggers (services.*, api.*) propagate to root
    _attach(logging.getLogger(), app_handlers, level, propagate=True)

    app_logger = logging.getLogger(app_logger_name or APP_LOGGER_NAME)
    _attach(app_logger, app_handlers, level)
    for name in ("uvicorn", "uvicorn.error", "fastapi"):
        _attach(logging.getLogger(name), app_handlers, level)
    _attach(logging.getLogger("uvicorn.access"), access_handlers, level)

    return app_logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the bearer token's subject and the endpoint to log records for one request."""

    async def dispatch(self, request: Request, call_next):
        user_id = "-"
        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() == "bearer" and token:
            payload = verify_token(token)
            if payload:
                user_id = payload.get("sub") or "-"

        token_user = user_id_var.set(user_id)
        token_api = api_var.set(f"{request.method} {request.url.path}")
        try:
            return await call_next(request)
        finally:
            user_id_var.reset(token_user)
            api_var.reset(token_api)
