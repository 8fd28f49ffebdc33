"""Assistant chat proxy.

Chat messages are forwarded to an n8n AI agent workflow. Only the latest
user message is sent as the query, together with the full history and a
session id the workflow uses to keep conversation memory.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from eventhub.database.models import User
from eventhub.errors import BadRequestError, ServiceUnavailableError, WebhookError
from eventhub.services.webhook import WorkflowWebhook, parse_reply

logger = logging.getLogger(__name__)

GUEST_SESSION_ID = "anonymous_guest"
FALLBACK_REPLY = "I'm having trouble connecting to my brain right now. Please try again."


def chat_session_id(user: User | None, client_session_id: str | None) -> str:
    """Memory key for the agent: the account if known, else the guest id."""
    if user is not None:
        return f"user_{user.id}"
    return client_session_id or GUEST_SESSION_ID


def last_user_message(messages: list[dict[str, Any]]) -> str | None:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message.get("content")
    return None


def extract_reply(data: Any) -> str:
    """Pull the answer text out of an agent reply.

    The agent answers ``[{"output": ...}]``, ``{"output": ...}``,
    ``{"text": ...}`` or a bare string depending on the workflow version.
    """
    if isinstance(data, str):
        return data
    if isinstance(data, list) and data:
        first = data[0]
        if isinstance(first, dict) and first.get("output"):
            return str(first["output"])
        return json.dumps(first)
    if isinstance(data, dict):
        if data.get("output"):
            return str(data["output"])
        if data.get("text"):
            return str(data["text"])
    return FALLBACK_REPLY


class AssistantService:
    """Forward chat conversations to the AI agent workflow."""

    def __init__(self, webhook: WorkflowWebhook | None):
        self.webhook = webhook

    async def chat(
        self,
        messages: list[dict[str, Any]],
        user: User | None = None,
        client_session_id: str | None = None,
    ) -> str:
        """Send the conversation to the agent and return its answer.

        Raises:
            BadRequestError: If there is no user message
            ServiceUnavailableError: If no agent webhook is configured
            WebhookError: If the agent fails or answers with an empty body
        """
        query = last_user_message(messages)
        if not query:
            raise BadRequestError("No user message found")

        if self.webhook is None:
            raise ServiceUnavailableError("AI Agent not configured")

        session_id = chat_session_id(user, client_session_id)
        logger.info(f"Assistant request for session {session_id}")

        reply = await self.webhook.post(
            {"query": query, "sessionId": session_id, "history": messages}
        )
        if not reply.strip():
            raise WebhookError(
                "n8n returned empty response. Make sure the workflow is active."
            )

        return extract_reply(parse_reply(reply, fallback_key="output"))
