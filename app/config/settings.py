from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    lovable_api_key: str | None = Field(default=None, description="AI gateway bearer key")
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_model: str | None = None
    ai_timeout_s: float = 60.0

    supabase_url: str | None = None
    supabase_publishable_key: str | None = None
    store_timeout_s: float = 10.0
    chat_messages_table: str = "chat_messages"

    log_level: str = "INFO"

    @field_validator(
        "lovable_api_key", "ai_model", "supabase_url", "supabase_publishable_key", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def ai_configured(self) -> bool:
        return bool(self.lovable_api_key)

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_publishable_key)

    @property
    def supabase_base_url(self) -> str:
        return (self.supabase_url or "").rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
