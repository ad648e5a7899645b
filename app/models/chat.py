from typing import Any

from pydantic import BaseModel, Field

# Caller-supplied prior turn, forwarded to the gateway without inspection.
ConversationTurn = dict[str, Any]


class AssistantReply(BaseModel):
    response: str


class ChatExchange(BaseModel):
    id: str
    response: str
    tokens_used: int = Field(ge=0)
    created_at: str


class ChatExchangeDraft(BaseModel):
    """Row written to the chat messages table."""

    user_id: str | None = None
    project_id: Any = None
    message: str
    response: str
    tokens_used: int = Field(ge=0)
