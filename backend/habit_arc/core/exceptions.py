"""
Custom Exceptions - Application-specific error types
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse


class HabitArcException(Exception):
    """Base exception for all habit arc errors"""
    pass


class AuthenticationError(HabitArcException):
    """Raised when a bearer token or API key is missing or invalid"""
    pass


class InvalidRequestError(HabitArcException):
    """Raised when a request body or parameter is malformed"""
    pass


class HabitNotFoundError(HabitArcException):
    """Raised when a habit cannot be found"""
    pass


class IdentityNotFoundError(HabitArcException):
    """Raised when an identity cannot be found"""
    pass


class InvalidHabitDataError(HabitArcException):
    """Raised when habit data validation fails"""
    pass


class DatabaseError(HabitArcException):
    """Raised when database operations fail"""
    pass


class ExternalServiceError(HabitArcException):
    """Raised when external services (Twilio, Telegram, push, email) fail"""
    pass


class ConfigurationError(HabitArcException):
    """Raised when a required setting is missing"""
    pass


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def describe_validation_errors(exc: RequestValidationError) -> str:
    """Join field errors as "field: message" pairs separated by semicolons"""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": describe_validation_errors(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Render HTTP and request validation errors as a JSON {"error": ...} body"""
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
