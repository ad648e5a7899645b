from typing import Any

from app.core.errors import ValidationError
from app.models.chat import ConversationTurn


def require_message(payload: Any) -> str:
    message = payload.get("message") if isinstance(payload, dict) else None
    if not message or not isinstance(message, str):
        raise ValidationError()
    return message


def coerce_history(value: Any) -> list[ConversationTurn]:
    # Entries are forwarded untouched; only the container type is checked.
    return list(value) if isinstance(value, list) else []
