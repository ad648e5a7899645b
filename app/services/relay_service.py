import logging
from collections.abc import Callable
from time import perf_counter
from typing import Any

from fastapi import Request

from app.config.settings import Settings
from app.core.errors import (
    STORE_NOT_CONFIGURED,
    ConfigurationError,
    request_id_from_request,
)
from app.models.chat import AssistantReply, ChatExchange, ChatExchangeDraft
from app.providers.base import CompletionClient
from app.providers.gateway import AIGatewayClient
from app.services.validation import coerce_history, require_message
from app.storage.chat_messages import (
    ChatExchangeStore,
    FellBack,
    SupabaseChatStore,
    persist_exchange,
)

ASSISTANT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for project management and compliance. "
    "Keep answers concise and practical."
)
PROJECT_SYSTEM_PROMPT = (
    "You are a helpful assistant for project-related queries. "
    "Keep answers concise and practical."
)
ASSISTANT_FALLBACK_RESPONSE = "Sorry, I couldn't generate a response."

logger = logging.getLogger("relay.chat")

StoreFactory = Callable[[Settings, str | None], ChatExchangeStore]


def build_messages(
    system_prompt: str, message: str, history: list[dict[str, Any]] | None = None
) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": system_prompt},
        *(history or []),
        {"role": "user", "content": message},
    ]


class _GatewayRelay:
    def __init__(self, settings: Settings, gateway: CompletionClient | None = None):
        self._settings = settings
        self._gateway = gateway

    def _require_gateway(self, request_id: str) -> CompletionClient:
        if not self._settings.ai_configured:
            logger.error("LOVABLE_API_KEY not set", extra={"request_id": request_id})
            raise ConfigurationError()
        return self._gateway or AIGatewayClient.from_settings(self._settings)


class AssistantRelay(_GatewayRelay):
    """Stateless relay: forwards the message and caller-held history, stores nothing."""

    async def handle(self, request: Request, payload: Any) -> AssistantReply:
        started = perf_counter()
        request_id = request_id_from_request(request)
        message = require_message(payload)
        gateway = self._require_gateway(request_id)

        history = coerce_history(payload.get("conversation_history"))
        result = await gateway.complete(build_messages(ASSISTANT_SYSTEM_PROMPT, message, history))

        logger.info(
            "assistant_completed",
            extra={
                "request_id": request_id,
                "relay": "assistant",
                "tokens_used": result.total_tokens,
                "latency_ms": int((perf_counter() - started) * 1000),
            },
        )
        return AssistantReply(response=result.text_or(ASSISTANT_FALLBACK_RESPONSE))


class ProjectChatRelay(_GatewayRelay):
    """Persisting relay: single-turn prompt, then one best-effort write of the exchange."""

    def __init__(
        self,
        settings: Settings,
        gateway: CompletionClient | None = None,
        store_factory: StoreFactory | None = None,
    ):
        super().__init__(settings, gateway)
        self._store_factory: StoreFactory = store_factory or SupabaseChatStore.for_request

    async def handle(self, request: Request, payload: Any) -> ChatExchange:
        started = perf_counter()
        request_id = request_id_from_request(request)
        message = require_message(payload)
        project_id = payload.get("project_id")
        gateway = self._require_gateway(request_id)
        if not self._settings.store_configured:
            logger.error("Supabase env not set", extra={"request_id": request_id})
            raise ConfigurationError(STORE_NOT_CONFIGURED, code="store_not_configured")

        store = self._store_factory(self._settings, request.headers.get("authorization"))

        result = await gateway.complete(build_messages(PROJECT_SYSTEM_PROMPT, message))
        content = result.text_or("")

        user_id = await store.resolve_user_id()
        draft = ChatExchangeDraft(
            user_id=user_id,
            project_id=project_id,
            message=message,
            response=content,
            tokens_used=result.total_tokens,
        )
        outcome = await persist_exchange(store, draft)

        log_extra = {
            "request_id": request_id,
            "relay": "chat",
            "project_id": project_id,
            "user_id": user_id,
            "tokens_used": result.total_tokens,
            "latency_ms": int((perf_counter() - started) * 1000),
        }
        if isinstance(outcome, FellBack):
            logger.error(
                "Insert error", extra={**log_extra, "outcome": "fell_back", "error": outcome.reason}
            )
        else:
            logger.info("chat_completed", extra={**log_extra, "outcome": "stored"})
        return outcome.record
