"""
Application errors and their JSON rendering.

Every error body has the shape ``{"error": CODE, ...}``; codes are stable and
meant for the front end to branch on.
"""
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app_logging import logger


class AppError(Exception):
    """Base error with a machine-readable code and HTTP status."""

    code = "SERVER_ERROR"
    status_code = 500

    def __init__(self, message: Optional[str] = None, payload: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.payload = payload or {}
        super().__init__(message or self.code)

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"error": self.code}
        if self.message:
            content["message"] = self.message
        content.update(self.payload)
        return jsonable_encoder(content)


class NotAuthenticatedError(AppError):
    code = "NOT_AUTHENTICATED"
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Not authenticated")


class InvalidCredentialsError(AppError):
    code = "INVALID_CREDENTIALS"
    status_code = 401

    def __init__(self, role: str) -> None:
        super().__init__(f"Invalid {role} credentials")


class ForbiddenError(AppError):
    code = "UNAUTHORIZED"
    status_code = 403

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class UsernameTakenError(AppError):
    code = "USERNAME_TAKEN"
    status_code = 400

    def __init__(self, username: str) -> None:
        super().__init__("Username already exists", {"username": username})


class MissingCaseIdError(AppError):
    code = "MISSING_CASE_ID"
    status_code = 400


class MissingFieldsError(AppError):
    code = "MISSING_FIELDS"
    status_code = 400

    def __init__(self, *fields: str) -> None:
        super().__init__(f"Missing {', '.join(fields)}" if fields else "Missing fields")


class CaseCompletedError(AppError):
    """Raised when a student acts on a case they already finished."""

    code = "CASE_COMPLETED"
    status_code = 403

    def __init__(self, attempt: Optional[Dict[str, Any]] = None) -> None:
        payload = {"attempt": attempt} if attempt is not None else None
        super().__init__("You already completed this case.", payload)


class AttemptNotFoundError(AppError):
    # Also raised for attempts owned by another user.
    code = "NOT_FOUND"
    status_code = 404


class BadSectionError(AppError):
    code = "BAD_SECTION"
    status_code = 400

    def __init__(self, section: Any) -> None:
        super().__init__(payload={"section": section})


class CaseNotFoundError(AppError):
    code = "CASE_NOT_FOUND"
    status_code = 404

    def __init__(self, case_id: int) -> None:
        super().__init__(f"Case {case_id} not found")


def configure_error_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on the application."""

    @app.exception_handler(AppError)
    async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "SERVER_ERROR"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "SERVER_ERROR"})
