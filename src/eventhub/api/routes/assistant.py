"""Assistant chat route.

Proxies the conversation to the n8n AI agent workflow. The reply keeps the
``choices[0].message.content`` shape the chat widget already consumes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from eventhub.api.dependencies import get_assistant_service
from eventhub.api.schemas import ChatEnvelope, ChatRequest
from eventhub.auth.dependencies import get_current_user_optional
from eventhub.database.models import User
from eventhub.services.assistant import AssistantService

router = APIRouter()


@router.post("/chat", response_model=ChatEnvelope)
async def chat(
    payload: ChatRequest,
    user: User | None = Depends(get_current_user_optional),
    service: AssistantService = Depends(get_assistant_service),
) -> ChatEnvelope:
    text = await service.chat(
        [message.model_dump() for message in payload.messages],
        user=user,
        client_session_id=payload.session_id,
    )
    return ChatEnvelope.from_text(text)
