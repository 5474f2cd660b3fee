"""
Error taxonomy for the Conduit services and its HTTP mapping.

Services raise these exceptions; they never build HTTP responses
themselves.  ``register_exception_handlers`` translates them into the
``{"errors": {"body": [...]}}`` envelope the API clients expect.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from conduit.config import settings

logger = logging.getLogger(__name__)


class ConduitError(Exception):
    """Base class for every error surfaced by the service layer."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ConduitError):
    """An article, user or comment is absent (or not under the named article)."""

    status_code = 404
    default_message = "not found"


class PermissionDeniedError(ConduitError):
    """A non-owner tried to change or remove an article or comment."""

    status_code = 403
    default_message = "permission denied"


class ConflictError(ConduitError):
    """A username or email is already used by a different user."""

    status_code = 409
    default_message = "already exists"


class InvalidInputError(ConduitError):
    status_code = 400
    default_message = "invalid input"


class AuthenticationError(ConduitError):
    status_code = 401
    default_message = "authentication required"


class InternalError(ConduitError):
    """Storage failure or a dangling author reference."""

    status_code = 500


def error_body(*messages: str) -> dict:
    return {"errors": {"body": list(messages)}}


# ---------------------------------------------------------------------------
# FastAPI handlers
# ---------------------------------------------------------------------------

def _conduit_error_handler(request: Request, exc: ConduitError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [
        "{}: {}".format(".".join(str(part) for part in err["loc"]), err["msg"])
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content=error_body(*messages))


def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(status_code=500, content=error_body(message))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers once, right after the app is created."""
    app.add_exception_handler(ConduitError, _conduit_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
