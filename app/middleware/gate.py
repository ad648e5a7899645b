import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.errors import app_error_response, failure_message, request_id_from_request

logger = logging.getLogger("relay.http")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class RequestGateMiddleware(BaseHTTPMiddleware):
    """Answers preflight requests and converts uncaught failures into 500 responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "unhandled relay failure",
                extra={
                    "request_id": request_id_from_request(request),
                    "path": request.url.path,
                    "error": failure_message(exc),
                },
            )
            response = app_error_response(500, failure_message(exc))

        response.headers.update(CORS_HEADERS)
        return response
