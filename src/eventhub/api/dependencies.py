"""FastAPI dependencies that build domain services per request.

Webhook clients come from their own dependencies so tests can replace
them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.config import get_settings
from eventhub.database.connection import get_db_session
from eventhub.services.assistant import AssistantService
from eventhub.services.events import EventService
from eventhub.services.favorites import FavoriteService
from eventhub.services.scraping import ScrapingService
from eventhub.services.webhook import WorkflowWebhook


def get_scraping_webhook() -> WorkflowWebhook | None:
    """Scraping workflow client, or None when N8N_WEBHOOK_URL is unset."""
    settings = get_settings()
    if not settings.n8n_webhook_url:
        return None
    return WorkflowWebhook(settings.n8n_webhook_url, timeout=settings.webhook_timeout_seconds)


def get_assistant_webhook() -> WorkflowWebhook | None:
    """Assistant workflow client, or None when N8N_AI_AGENT_URL is unset."""
    settings = get_settings()
    if not settings.n8n_ai_agent_url:
        return None
    return WorkflowWebhook(settings.n8n_ai_agent_url, timeout=settings.webhook_timeout_seconds)


def get_event_service(db: AsyncSession = Depends(get_db_session)) -> EventService:
    return EventService(db, max_page_size=get_settings().max_page_size)


def get_favorite_service(db: AsyncSession = Depends(get_db_session)) -> FavoriteService:
    return FavoriteService(db, max_page_size=get_settings().max_page_size)


def get_scraping_service(
    db: AsyncSession = Depends(get_db_session),
    webhook: WorkflowWebhook | None = Depends(get_scraping_webhook),
) -> ScrapingService:
    return ScrapingService(db, webhook, max_page_size=get_settings().max_page_size)


def get_assistant_service(
    webhook: WorkflowWebhook | None = Depends(get_assistant_webhook),
) -> AssistantService:
    return AssistantService(webhook)
