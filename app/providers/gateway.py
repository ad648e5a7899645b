"""HTTP client for the OpenAI-compatible AI gateway."""

import logging
from typing import Any

import httpx

from app.config.settings import Settings
from app.core.errors import PaymentRequiredError, RateLimitedError, UpstreamError
from app.providers.base import UpstreamCompletionResult

logger = logging.getLogger("relay.gateway")


class AIGatewayClient:
    """Sends a single non-streaming chat completion to the AI gateway."""

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str | None = None,
        timeout_s: float = 60.0,
    ):
        self._url = url
        self._api_key = api_key
        self._model = model
        self._timeout = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIGatewayClient":
        return cls(
            url=settings.ai_gateway_url,
            api_key=settings.lovable_api_key or "",
            model=settings.ai_model,
            timeout_s=settings.ai_timeout_s,
        )

    async def complete(self, messages: list[dict[str, Any]]) -> UpstreamCompletionResult:
        body: dict[str, object] = {
            "messages": messages,
            "stream": False,
        }
        if self._model:
            body["model"] = self._model

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(self._url, json=body, headers=headers)

        self._raise_for_status(resp)
        return self._parse(resp)

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code == 429:
            raise RateLimitedError()
        if resp.status_code == 402:
            raise PaymentRequiredError()
        if not resp.is_success:
            detail = resp.text
            logger.error(
                "AI gateway error",
                extra={"upstream_status": resp.status_code, "error": detail},
            )
            raise UpstreamError(upstream_status=resp.status_code, detail=detail)

    @staticmethod
    def _parse(resp: httpx.Response) -> UpstreamCompletionResult:
        try:
            payload = resp.json()
        except ValueError:
            logger.warning(
                "AI gateway returned a non-JSON body",
                extra={"upstream_status": resp.status_code},
            )
            payload = None
        if not isinstance(payload, dict):
            return UpstreamCompletionResult(content=None, total_tokens=0)
        return UpstreamCompletionResult(
            content=_first_choice_content(payload),
            total_tokens=_total_tokens(payload),
        )


def _first_choice_content(payload: dict[str, Any]) -> str | None:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def _total_tokens(payload: dict[str, Any]) -> int:
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return 0
    value = usage.get("total_tokens")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value
