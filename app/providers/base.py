from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class UpstreamCompletionResult:
    content: str | None
    total_tokens: int = 0

    def text_or(self, fallback: str) -> str:
        return self.content if self.content is not None else fallback


class CompletionClient(Protocol):
    async def complete(self, messages: list[dict[str, Any]]) -> UpstreamCompletionResult:
        """Send one non-streaming chat completion and return the parsed result."""
