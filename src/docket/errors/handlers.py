"""FastAPI exception handlers producing the standard ErrorResponse."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docket.errors.exceptions import AuthenticationError, DocketError
from docket.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(request: Request, code: str, message: str, details, status_code: int) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", "trc_unknown")
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(DocketError)
    async def docket_error_handler(request: Request, exc: DocketError):
        if isinstance(exc, AuthenticationError):
            logger.info("todo_api_unauthenticated path=%s", request.url.path)
        elif exc.status_code >= 500:
            logger.error("todo_api_error code=%s message=%s", exc.code, exc.message)
        return _error_response(request, exc.code, exc.message, exc.details, exc.status_code)
