"""Venue scraping routes.

- POST /api/scraping/trigger - Start the n8n scraping workflow
- GET /api/scraping/venues - Browse scraped venues

Both require a signed-in user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from eventhub.api.dependencies import get_scraping_service
from eventhub.api.schemas import (
    PaginationResponse,
    ScrapeTriggerEnvelope,
    VenueListEnvelope,
    VenueResponse,
)
from eventhub.auth.dependencies import get_current_user
from eventhub.database.models import User
from eventhub.models.venue import ScrapeTriggerRequest
from eventhub.services.scraping import ScrapingService

router = APIRouter()


@router.post("/trigger", response_model=ScrapeTriggerEnvelope)
async def trigger_scraping(
    payload: ScrapeTriggerRequest,
    user: User = Depends(get_current_user),
    service: ScrapingService = Depends(get_scraping_service),
) -> ScrapeTriggerEnvelope:
    """Trigger a scraping run for a city and keyword."""
    result = await service.trigger(payload.city, payload.keyword, user)
    return ScrapeTriggerEnvelope(
        message="Scraping workflow triggered successfully",
        sheet_url=result.sheet_url,
        data=result.data,
    )


@router.get("/venues", response_model=VenueListEnvelope)
async def list_venues(
    request: Request,
    user: User = Depends(get_current_user),
    service: ScrapingService = Depends(get_scraping_service),
) -> VenueListEnvelope:
    """List scraped venues, newest first unless sorted otherwise.

    Accepts page, limit, city, keyword, search, sort (scraped_at, title,
    city) and order.
    """
    page = await service.list_venues(request.query_params)
    return VenueListEnvelope(
        data=[VenueResponse.from_venue(venue) for venue in page.items],
        pagination=PaginationResponse.from_pagination(page.pagination),
    )
