"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from nutriai.api.errors import (
    REQUEST_ID_HEADER,
    error_response,
    install_error_handlers,
    new_request_id,
    request_id_of,
)
from nutriai.api.models import AnalyzeMealRequest, RefineMealRequest
from nutriai.app_logging import configure_logging
from nutriai.containers import AppContainer
from nutriai.domain.errors import AuthenticationError, AuthorizationError
from nutriai.services.analysis import AnalyzeMealCommand

ALLOWED_HEADERS = ("authorization", "x-client-info", "apikey", "content-type")
ALLOWED_METHODS = ("POST", "OPTIONS")
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
    "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
    "Access-Control-Expose-Headers": f"{REQUEST_ID_HEADER}, X-Auth-Status",
}


async def bearer_token(authorization: str | None = Header(default=None)) -> str:
    """Extract the bearer credential without resolving it."""
    if not authorization:
        raise AuthenticationError(
            "Missing Authorization header",
            auth_status="Missing-Token",
            stage="authorization",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(
            "Malformed Authorization header - must use Bearer scheme",
            auth_status="Malformed-Token",
            stage="authorization",
        )
    return token.strip()


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    install_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=list(ALLOWED_METHODS),
        allow_headers=list(ALLOWED_HEADERS),
        expose_headers=[REQUEST_ID_HEADER, "X-Auth-Status"],
    )

    @app.middleware("http")
    async def request_context(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = new_request_id()
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("[%s] unhandled error", request_id)
            response = error_response(
                request_id,
                stage="fatal",
                message="An unexpected error occurred",
                status_code=500,
                headers=CORS_HEADERS,
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.options("/meals/analyze")
    @app.options("/meals/refine")
    async def preflight() -> PlainTextResponse:
        """Answer capability negotiation with the fixed permissive policy."""
        return PlainTextResponse("ok", headers=CORS_HEADERS)

    @app.post("/meals/analyze")
    async def analyze_meal(
        payload: AnalyzeMealRequest,
        request: Request,
        token: str = Depends(bearer_token),
    ) -> dict[str, object]:
        """Analyze a meal description and log it for the caller."""
        state_container: AppContainer = request.app.state.container
        request_id = request_id_of(request)
        caller_id = state_container.identity_resolver.resolve(token)
        analysis_service = state_container.analysis_service
        if (
            not analysis_service.is_preview(payload.caller_id)
            and payload.caller_id != caller_id
        ):
            raise AuthorizationError("Caller may only log meals for themselves")
        logger.info(
            "[%s] analyze caller=%s existing=%s",
            request_id,
            payload.caller_id,
            payload.existing_analysis is not None,
        )

        result = await analysis_service.analyze(
            AnalyzeMealCommand(
                description=payload.description,
                caller_id=payload.caller_id,
                meal_category=payload.meal_category,
                day=payload.day,
                existing_analysis=payload.existing_analysis,
            )
        )
        logger.info(
            "[%s] analyzed %s item(s), group=%s",
            request_id,
            len(result.analysis.foods),
            result.meal_group_id,
        )
        body: dict[str, object] = {
            "success": True,
            "mealAnalysis": result.analysis.to_payload(),
        }
        if result.meal_group_id is not None:
            body["mealGroupId"] = str(result.meal_group_id)
        return body

    @app.post("/meals/refine")
    async def refine_meal(
        payload: RefineMealRequest,
        request: Request,
        token: str = Depends(bearer_token),
    ) -> dict[str, object]:
        """Apply a correction to a logged meal group."""
        state_container: AppContainer = request.app.state.container
        request_id = request_id_of(request)
        caller_id = state_container.identity_resolver.resolve(token)
        logger.info("[%s] refine group=%s", request_id, payload.meal_group_id)

        result = await state_container.refinement_service.refine(
            payload.meal_group_id,
            payload.correction_text,
            apply_to_log=payload.apply_to_log,
            caller_id=caller_id,
        )
        return {
            "success": True,
            "newAnalysis": result.analysis.to_payload(),
            "newHistory": [turn.model_dump() for turn in result.history],
        }

    return app
