from fastapi import APIRouter, Request

from app.config.settings import Settings
from app.models.chat import AssistantReply, ChatExchange
from app.services.relay_service import AssistantRelay, ProjectChatRelay

router = APIRouter()


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
def readyz(request: Request) -> dict[str, object]:
    settings: Settings = request.app.state.settings
    dependencies = {
        "ai_gateway": "ok" if settings.ai_configured else "missing_api_key",
        "store": "ok" if settings.store_configured else "not_configured",
    }
    status = "ready" if all(value == "ok" for value in dependencies.values()) else "degraded"
    return {"status": status, "dependencies": dependencies}


@router.post("/chat-assistant", response_model=AssistantReply)
async def chat_assistant(request: Request) -> AssistantReply:
    relay: AssistantRelay = request.app.state.assistant_relay
    payload = await request.json()
    return await relay.handle(request, payload)


@router.post("/chat-with-ai", response_model=ChatExchange)
async def chat_with_ai(request: Request) -> ChatExchange:
    relay: ProjectChatRelay = request.app.state.project_chat_relay
    payload = await request.json()
    return await relay.handle(request, payload)
