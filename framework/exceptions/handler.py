from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from framework.logging.logger import get_logger
from framework.repository.exceptions import EntityNotFoundError
from framework.response import to_response
from framework.result import Result

logger = get_logger("exception_handler")


def _validation_messages(exc: RequestValidationError) -> list:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg', 'invalid value')}" if location else error.get("msg", "invalid value"))
    return messages or ["Invalid request parameters"]


def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler; every error body is a failed Result."""
    trace_id = getattr(request.state, "trace_id", "unknown")

    if isinstance(exc, EntityNotFoundError):
        logger.warning(f"Trace[{trace_id}] - NotFound: {exc}")
        return to_response(Result.not_found(str(exc)))

    if isinstance(exc, RequestValidationError):
        logger.error(f"Trace[{trace_id}] - ValidationError: {exc.errors()}")
        return to_response(
            Result.failure(status.HTTP_422_UNPROCESSABLE_ENTITY, _validation_messages(exc))
        )

    if isinstance(exc, SQLAlchemyError):
        logger.critical(f"Trace[{trace_id}] - DatabaseError: {str(exc)}")
        return to_response(
            Result.failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Service temporarily unavailable")
        )

    logger.opt(exception=True).error(f"Trace[{trace_id}] - UncaughtException: {str(exc)}")

    return to_response(
        Result.failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "System busy, please try again later")
    )
