from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings, clear_settings_cache
from app.main import create_app

RELAY_ENV_VARS = (
    "LOVABLE_API_KEY",
    "AI_GATEWAY_URL",
    "AI_MODEL",
    "SUPABASE_URL",
    "SUPABASE_PUBLISHABLE_KEY",
    "CHAT_MESSAGES_TABLE",
)


class FakeHTTP:
    """Routes patched httpx.AsyncClient calls to canned responses by URL fragment."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._routes: list[tuple[str, str, httpx.Response | Exception]] = []

    def on(self, method: str, url_fragment: str, response: httpx.Response | Exception) -> None:
        self._routes.append((method, url_fragment, response))

    def calls_to(self, url_fragment: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if url_fragment in call["url"]]

    async def dispatch(self, method: str, url: Any, **kwargs: Any) -> httpx.Response:
        self.calls.append({"method": method, "url": str(url), **kwargs})
        for route_method, fragment, response in reversed(self._routes):
            if route_method == method and fragment in str(url):
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"Unexpected {method} {url}")


def completion(content: str | None = "Hello", total_tokens: int | None = None) -> httpx.Response:
    payload: dict[str, Any] = {"choices": [{"message": {"content": content}}]}
    if total_tokens is not None:
        payload["usage"] = {"total_tokens": total_tokens}
    return httpx.Response(200, json=payload)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch) -> FakeHTTP:
    fake = FakeHTTP()

    async def fake_post(self, url, **kwargs):  # type: ignore[no-untyped-def]  # noqa: ANN001
        return await fake.dispatch("POST", url, **kwargs)

    async def fake_get(self, url, **kwargs):  # type: ignore[no-untyped-def]  # noqa: ANN001
        return await fake.dispatch("GET", url, **kwargs)

    monkeypatch.setattr("httpx.AsyncClient.post", fake_post)
    monkeypatch.setattr("httpx.AsyncClient.get", fake_get)
    return fake


@pytest.fixture
def settings() -> Settings:
    return Settings(
        lovable_api_key="test-ai-key",
        supabase_url="https://store.example.test",
        supabase_publishable_key="anon-key",
    )


@pytest.fixture
def client(settings: Settings, fake_http: FakeHTTP) -> TestClient:
    return TestClient(create_app(settings=settings))


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"Authorization": "Bearer user-jwt"}


@pytest.fixture
def make_completion():  # type: ignore[no-untyped-def]
    return completion
