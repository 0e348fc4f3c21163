from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class BadRequestError(HTTPException):
    def __init__(self, detail: str = "Invalid request", status_code: int = HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized", status_code: int = HTTP_401_UNAUTHORIZED):
        super().__init__(status_code=status_code, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Forbidden", status_code: int = HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found", status_code: int = HTTP_404_NOT_FOUND):
        super().__init__(status_code=status_code, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict", status_code: int = HTTP_409_CONFLICT):
        super().__init__(status_code=status_code, detail=detail)


class ServiceError(HTTPException):
    def __init__(self, detail: str = "Internal server error", status_code: int = HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class EmailDeliveryError(ServiceError):
    """Raised when the SMTP transport refuses or cannot deliver a message."""

    def __init__(self, detail: str = "Failed to send email"):
        super().__init__(detail=detail)


class CorruptedVerificationError(ServiceError):
    def __init__(self, detail: str = "Verification store is corrupted. Request a new code"):
        super().__init__(detail=detail)


class MailerConfigError(RuntimeError):
    """Raised at startup when SMTP settings are incomplete."""
