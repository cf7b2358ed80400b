"""Error responses and request correlation for the HTTP surface."""

import logging
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from nutriai.domain.errors import (
    AnalysisValidationError,
    AuthenticationError,
    EngineError,
    PayloadParsingError,
)

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    """Return a short identifier used to correlate logs and responses."""
    return f"req_{uuid4().hex[:12]}"


def request_id_of(request: Request) -> str:
    """Return the id assigned to the request by the middleware."""
    request_id = getattr(request.state, "request_id", None)
    return request_id or new_request_id()


def error_response(
    request_id: str,
    *,
    stage: str,
    message: str,
    status_code: int,
    headers: dict[str, str] | None = None,
    issues: list[str] | None = None,
) -> JSONResponse:
    """Build the uniform failure body."""
    content: dict[str, object] = {
        "success": False,
        "stage": stage,
        "error": message,
        "requestId": request_id,
    }
    if issues:
        content["issues"] = issues
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={REQUEST_ID_HEADER: request_id, **(headers or {})},
    )


def install_error_handlers(app: FastAPI) -> None:
    """Map engine errors and malformed bodies to the failure body."""

    @app.exception_handler(EngineError)
    async def engine_error(request: Request, exc: EngineError) -> JSONResponse:
        request_id = request_id_of(request)
        logger.warning(
            "[%s] %s failure: %s", request_id, exc.stage, exc, exc_info=exc.__cause__
        )
        headers = {}
        if isinstance(exc, AuthenticationError):
            headers["X-Auth-Status"] = exc.auth_status
        return error_response(
            request_id,
            stage=exc.stage,
            message=exc.message,
            status_code=exc.status_code,
            headers=headers,
            issues=exc.issues if isinstance(exc, AnalysisValidationError) else None,
        )

    @app.exception_handler(RequestValidationError)
    async def payload_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        request_id = request_id_of(request)
        logger.info("[%s] payload rejected: %s", request_id, exc.errors())
        return await engine_error(
            request,
            PayloadParsingError("Request body is not valid JSON of the expected shape"),
        )
