"""Caller-scoped writer for the chat messages table.

The store is a PostgREST/GoTrue backend. Every instance is bound to a single
request and forwards the caller's own ``Authorization`` header, so row-level
access policy is enforced by the store rather than by this service.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.config.settings import Settings
from app.core.errors import StorageError
from app.models.chat import ChatExchange, ChatExchangeDraft

logger = logging.getLogger("relay.storage")

RETURNED_COLUMNS = "id,response,tokens_used,created_at"


@dataclass(frozen=True)
class Stored:
    record: ChatExchange


@dataclass(frozen=True)
class FellBack:
    record: ChatExchange
    reason: str


PersistOutcome = Stored | FellBack


class ChatExchangeStore(Protocol):
    async def resolve_user_id(self) -> str | None:
        """Return the caller's user id, or None when it cannot be resolved."""

    async def insert(self, draft: ChatExchangeDraft) -> ChatExchange:
        """Write one row and return the stored columns. Raises StorageError."""


class SupabaseChatStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        authorization: str | None,
        table: str = "chat_messages",
        timeout_s: float = 10.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._authorization = authorization or f"Bearer {api_key}"
        self._table = table
        self._timeout = timeout_s

    @classmethod
    def for_request(cls, settings: Settings, authorization: str | None) -> "SupabaseChatStore":
        return cls(
            base_url=settings.supabase_base_url,
            api_key=settings.supabase_publishable_key or "",
            authorization=authorization,
            table=settings.chat_messages_table,
            timeout_s=settings.store_timeout_s,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": self._authorization,
        }

    async def resolve_user_id(self) -> str | None:
        url = f"{self._base_url}/auth/v1/user"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("user lookup failed", extra={"error": str(exc)})
            return None

        if resp.status_code != 200:
            logger.info("user lookup rejected", extra={"status_code": resp.status_code})
            return None
        try:
            payload = resp.json()
        except ValueError:
            return None
        user_id = payload.get("id") if isinstance(payload, dict) else None
        return str(user_id) if user_id else None

    async def insert(self, draft: ChatExchangeDraft) -> ChatExchange:
        url = f"{self._base_url}/rest/v1/{self._table}"
        headers = {
            **self._headers(),
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    url,
                    json=draft.model_dump(),
                    headers=headers,
                    params={"select": RETURNED_COLUMNS},
                )
        except httpx.HTTPError as exc:
            raise StorageError(f"Insert request failed: {exc}") from exc

        if not resp.is_success:
            raise StorageError(f"Insert returned {resp.status_code}: {resp.text}")

        try:
            rows = resp.json()
        except ValueError as exc:
            raise StorageError("Insert returned a non-JSON body") from exc
        row = rows[0] if isinstance(rows, list) and rows else rows
        if not isinstance(row, dict):
            raise StorageError("Insert returned no row")
        try:
            return ChatExchange.model_validate(row)
        except PydanticValidationError as exc:
            raise StorageError(f"Insert returned an unexpected row: {exc}") from exc


def synthesize_exchange(response: str, tokens_used: int) -> ChatExchange:
    return ChatExchange(
        id=str(uuid4()),
        response=response,
        tokens_used=tokens_used,
        created_at=datetime.now(UTC).isoformat(),
    )


async def persist_exchange(store: ChatExchangeStore, draft: ChatExchangeDraft) -> PersistOutcome:
    """Attempt exactly one write; fall back to a synthesized record on failure."""
    try:
        record = await store.insert(draft)
    except StorageError as exc:
        return FellBack(
            record=synthesize_exchange(draft.response, draft.tokens_used),
            reason=str(exc),
        )
    return Stored(record=record)
