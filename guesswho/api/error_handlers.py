"""
Error handlers
全局异常处理：领域错误、请求校验错误、存储故障、兜底异常

Every failure is rendered as an ``ErrorResponse`` body carrying the error kind
in ``error_code``. Unexpected exceptions never leak internal details.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DisconnectionError, OperationalError

from guesswho.core.exceptions import GuessWhoError, StorageUnavailable
from guesswho.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app"""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_storage_error_handler(app)
    _register_generic_error_handler(app)


def error_response(status_code: int, error_code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(message=message, error_code=error_code, error_details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(GuessWhoError)
    async def domain_error_handler(request: Request, exc: GuessWhoError):
        """Rejected game operations; state is left unchanged"""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.kind, exc.message, exc.details)


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        details = {
            "errors": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ]
        }
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", "Invalid request data", details
        )


def _register_storage_error_handler(app: FastAPI) -> None:

    async def storage_error_handler(request: Request, exc: Exception):
        """Driver failures that escaped a service are reported, never retried"""
        logger.error(f"Storage failure on {request.url.path}: {exc}")
        return error_response(
            StorageUnavailable.status_code, StorageUnavailable.kind, "Database unavailable"
        )

    app.add_exception_handler(OperationalError, storage_error_handler)
    app.add_exception_handler(DisconnectionError, storage_error_handler)


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all, never leaks internal details"""
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "An unexpected error occurred"
        )
