"""Application exceptions and the handlers that turn them into JSON responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

VALIDATION_TITLE = "One or more validation errors occurred."


class ProblemError(Exception):
    """A business-rule failure reported to the client as {title, status}."""

    def __init__(self, status_code: int, title: str) -> None:
        super().__init__(title)
        self.status_code = status_code
        self.title = title


class AuthenticationRequired(Exception):
    """The endpoint needs a session and the request has none (or a rejected one)."""

    def __init__(self, clear_cookie: bool = False) -> None:
        super().__init__("Unauthorized")
        self.clear_cookie = clear_cookie


class AccessDenied(Exception):
    """The session is valid but lacks a required role."""


class IdentityError(Exception):
    """The identity store rejected an operation (constraint violation, etc.)."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Operation failed: " + "; ".join(errors))


def _field_name(loc: tuple) -> str:
    # ("body", "firstName") -> "firstName"; a missing body maps to "".
    parts = [str(p) for p in loc if p != "body"]
    return ".".join(parts)


def validation_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by field, keeping the message text only."""
    grouped: dict[str, list[str]] = {}
    for err in exc.errors():
        grouped.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(err["msg"])
    return grouped


def register_exception_handlers(app: FastAPI, cookie_name: str) -> None:
    """Install JSON handlers for every application exception type."""

    @app.exception_handler(ProblemError)
    async def _problem(request: Request, exc: ProblemError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"title": exc.title, "status": exc.status_code},
        )

    @app.exception_handler(RequestValidationError)
    async def _invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "title": VALIDATION_TITLE,
                "status": status.HTTP_400_BAD_REQUEST,
                "errors": validation_errors(exc),
            },
        )

    @app.exception_handler(AuthenticationRequired)
    async def _unauthorized(request: Request, exc: AuthenticationRequired) -> JSONResponse:
        response = JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Unauthorized"},
        )
        if exc.clear_cookie:
            response.delete_cookie(cookie_name, path="/")
        return response

    @app.exception_handler(AccessDenied)
    async def _forbidden(request: Request, exc: AccessDenied) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"message": "Access Denied"},
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "An unexpected error occurred."},
        )
