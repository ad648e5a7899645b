import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import router
from app.config.settings import Settings, get_settings
from app.core.errors import AppError, app_error_response, request_id_from_request
from app.core.logging import configure_logging
from app.middleware.gate import RequestGateMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.providers.base import CompletionClient
from app.services.relay_service import AssistantRelay, ProjectChatRelay, StoreFactory

logger = logging.getLogger("relay.http")


def create_app(
    settings: Settings | None = None,
    gateway: CompletionClient | None = None,
    store_factory: StoreFactory | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Project Chat Relay", version="0.1.0")

    app.add_middleware(RequestGateMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.state.settings = settings
    app.state.assistant_relay = AssistantRelay(settings=settings, gateway=gateway)
    app.state.project_chat_relay = ProjectChatRelay(
        settings=settings,
        gateway=gateway,
        store_factory=store_factory,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        logger.info(
            "relay_request_rejected",
            extra={
                "request_id": request_id_from_request(request),
                "path": request.url.path,
                "status_code": exc.status_code,
                "code": exc.code,
            },
        )
        return app_error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = app_error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    app.include_router(router)
    return app


app = create_app()
