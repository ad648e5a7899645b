import asyncio

import httpx
import pytest

from app.config.settings import Settings
from app.core.errors import StorageError
from app.models.chat import ChatExchange, ChatExchangeDraft
from app.storage.chat_messages import (
    FellBack,
    Stored,
    SupabaseChatStore,
    persist_exchange,
    synthesize_exchange,
)

DRAFT = ChatExchangeDraft(
    user_id="user-1",
    project_id="proj-1",
    message="hello",
    response="Done",
    tokens_used=12,
)


class _RecordingStore:
    def __init__(self, error: Exception | None = None):
        self.inserts: list[ChatExchangeDraft] = []
        self._error = error

    async def resolve_user_id(self) -> str | None:
        return "user-1"

    async def insert(self, draft: ChatExchangeDraft) -> ChatExchange:
        self.inserts.append(draft)
        if self._error is not None:
            raise self._error
        return ChatExchange(
            id="row-1",
            response=draft.response,
            tokens_used=draft.tokens_used,
            created_at="2026-10-19T08:15:00+00:00",
        )


def test_persist_exchange_returns_stored_record() -> None:
    store = _RecordingStore()

    outcome = asyncio.run(persist_exchange(store, DRAFT))

    assert isinstance(outcome, Stored)
    assert outcome.record.id == "row-1"
    assert store.inserts == [DRAFT]


def test_persist_exchange_falls_back_after_single_attempt() -> None:
    store = _RecordingStore(error=StorageError("Insert returned 401: JWT expired"))

    outcome = asyncio.run(persist_exchange(store, DRAFT))

    assert isinstance(outcome, FellBack)
    assert outcome.reason == "Insert returned 401: JWT expired"
    assert outcome.record.response == "Done"
    assert outcome.record.tokens_used == 12
    assert len(store.inserts) == 1


def test_synthesize_exchange_generates_fresh_ids() -> None:
    first = synthesize_exchange("a", 1)
    second = synthesize_exchange("a", 1)
    assert first.id != second.id
    assert first.created_at.endswith("+00:00")


def test_for_request_forwards_caller_authorization() -> None:
    settings = Settings(
        supabase_url="https://abc.supabase.co/",
        supabase_publishable_key="anon",
        chat_messages_table="project_chat",
    )
    store = SupabaseChatStore.for_request(settings, "Bearer user-jwt")
    assert store._headers() == {"apikey": "anon", "Authorization": "Bearer user-jwt"}

    anonymous = SupabaseChatStore.for_request(settings, None)
    assert anonymous._headers()["Authorization"] == "Bearer anon"


def test_insert_raises_storage_error_on_rejection(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_post(self, url, **kwargs):  # type: ignore[no-untyped-def]  # noqa: ANN001
        return httpx.Response(403, text='{"message":"new row violates row-level security"}')

    monkeypatch.setattr("httpx.AsyncClient.post", fake_post)
    store = SupabaseChatStore(base_url="https://abc.supabase.co", api_key="anon", authorization=None)

    with pytest.raises(StorageError, match="Insert returned 403"):
        asyncio.run(store.insert(DRAFT))


def test_insert_rejects_malformed_row(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_post(self, url, **kwargs):  # type: ignore[no-untyped-def]  # noqa: ANN001
        return httpx.Response(201, json=[{"id": "row-1"}])

    monkeypatch.setattr("httpx.AsyncClient.post", fake_post)
    store = SupabaseChatStore(base_url="https://abc.supabase.co", api_key="anon", authorization=None)

    with pytest.raises(StorageError, match="unexpected row"):
        asyncio.run(store.insert(DRAFT))


def test_resolve_user_id_tolerates_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    responses = [
        httpx.Response(200, json={"id": "user-9"}),
        httpx.Response(401, json={"msg": "invalid JWT"}),
        httpx.Response(200, text="not json"),
    ]

    async def fake_get(self, url, **kwargs):  # type: ignore[no-untyped-def]  # noqa: ANN001
        assert url == "https://abc.supabase.co/auth/v1/user"
        return responses.pop(0)

    monkeypatch.setattr("httpx.AsyncClient.get", fake_get)
    store = SupabaseChatStore(
        base_url="https://abc.supabase.co", api_key="anon", authorization="Bearer user-jwt"
    )

    assert asyncio.run(store.resolve_user_id()) == "user-9"
    assert asyncio.run(store.resolve_user_id()) is None
    assert asyncio.run(store.resolve_user_id()) is None
