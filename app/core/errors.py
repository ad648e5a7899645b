from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse

MISSING_MESSAGE = "Missing 'message'"
AI_NOT_CONFIGURED = "AI not configured"
STORE_NOT_CONFIGURED = "Server config error"
RATE_LIMITED = "Rate limits exceeded, please try again later."
PAYMENT_REQUIRED = "Payment required. Please add funds to your Lovable AI workspace."
GATEWAY_ERROR = "AI gateway error"
UNKNOWN_ERROR = "Unknown error"


@dataclass
class ErrorEnvelope:
    message: str

    def as_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class AppError(Exception):
    """Failure with a caller-visible status code and message."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class ValidationError(AppError):
    def __init__(self, message: str = MISSING_MESSAGE):
        super().__init__(400, "validation_failed", message)


class ConfigurationError(AppError):
    def __init__(self, message: str = AI_NOT_CONFIGURED, code: str = "ai_not_configured"):
        super().__init__(500, code, message)


class RateLimitedError(AppError):
    def __init__(self) -> None:
        super().__init__(429, "upstream_rate_limited", RATE_LIMITED)


class PaymentRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(402, "upstream_payment_required", PAYMENT_REQUIRED)


class UpstreamError(AppError):
    def __init__(self, upstream_status: int, detail: str = ""):
        super().__init__(500, "upstream_error", GATEWAY_ERROR)
        self.upstream_status = upstream_status
        self.detail = detail


class StorageError(Exception):
    """Raised when the chat exchange could not be written. Never surfaced to callers."""


def failure_message(exc: BaseException) -> str:
    return str(exc) or UNKNOWN_ERROR


def request_id_from_request(request: Request) -> str:
    state_id = getattr(request.state, "request_id", None)
    header_id = request.headers.get("x-request-id")
    return state_id or header_id or str(uuid4())


def app_error_response(status_code: int, message: str) -> JSONResponse:
    envelope = ErrorEnvelope(message=message)
    return JSONResponse(status_code=status_code, content=envelope.as_dict())
