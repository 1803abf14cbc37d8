from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.platform.error_handler import log_error
from app.platform.logger import get_structured_logger
from app.platform.response import api_response, error_response

logger = get_structured_logger(__name__)


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            "VALIDATION_ERROR",
            "Validation failed",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=exc.errors(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        classified = log_error(exc, "unhandled_exception", logger, path=request.url.path)
        return error_response(classified.code, classified.user_message, status.HTTP_500_INTERNAL_SERVER_ERROR)
