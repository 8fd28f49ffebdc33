"""Venue scraping.

Scraping itself happens in an external n8n workflow: the API only triggers
it and reads back what the workflow wrote into ``scraped_venues``.

## Trigger Payload

```json
{
  "city": "Paris",
  "keyword": "jazz club",
  "userEmail": "user@example.com",
  "triggeredAt": "2025-01-01T12:00:00+00:00"
}
```

The workflow may answer with JSON (optionally carrying ``sheetUrl``, the
Google Sheet the results are exported to) or with plain text.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.database.models import ScrapedVenue, ScrapeRequest, User
from eventhub.errors import ServiceUnavailableError
from eventhub.query.builder import DESC, ListQueryBuilder, Pagination
from eventhub.services.webhook import WorkflowWebhook, parse_reply

logger = logging.getLogger(__name__)

VENUES_PAGE_SIZE = 20


def venue_query_builder(max_limit: int | None = None) -> ListQueryBuilder:
    """Query builder for ``GET /api/scraping/venues``."""
    return ListQueryBuilder(
        filters=[("city", ScrapedVenue.city), ("keyword", ScrapedVenue.keyword)],
        search_columns=[ScrapedVenue.title, ScrapedVenue.address],
        sort_columns={
            "scraped_at": ScrapedVenue.scraped_at,
            "title": ScrapedVenue.title,
            "city": ScrapedVenue.city,
        },
        default_sort="scraped_at",
        default_order=DESC,
        default_limit=VENUES_PAGE_SIZE,
        max_limit=max_limit,
    )


@dataclass
class ScrapeResult:
    """Outcome of a triggered scraping run."""

    request_id: int
    sheet_url: str | None
    data: Any = field(default_factory=dict)


@dataclass
class VenuePage:
    """One page of scraped venues."""

    items: list[ScrapedVenue]
    pagination: Pagination


class ScrapingService:
    """Trigger the scraping workflow and browse its results.

    Args:
        session: Database session
        webhook: Client for the scraping workflow, or None when the
            workflow is not configured
        max_page_size: Cap on the venue page size
    """

    def __init__(
        self,
        session: AsyncSession,
        webhook: WorkflowWebhook | None,
        max_page_size: int | None = None,
    ):
        self.session = session
        self.webhook = webhook
        self.builder = venue_query_builder(max_page_size)

    async def trigger(self, city: str, keyword: str, user: User) -> ScrapeResult:
        """Start a scraping run for ``keyword`` venues in ``city``.

        Raises:
            ServiceUnavailableError: If no webhook is configured
            WebhookError: If the workflow call fails
        """
        if self.webhook is None:
            raise ServiceUnavailableError("Scraping service is not configured")

        triggered_at = datetime.now(timezone.utc)
        reply = await self.webhook.post(
            {
                "city": city,
                "keyword": keyword,
                "userEmail": user.email,
                "triggeredAt": triggered_at.isoformat(),
            }
        )
        data = parse_reply(reply, fallback_key="message")
        sheet_url = data.get("sheetUrl") if isinstance(data, dict) else None
        if not isinstance(sheet_url, str):
            sheet_url = None

        request = ScrapeRequest(
            city=city,
            keyword=keyword,
            requested_by=user.id,
            sheet_url=sheet_url,
            triggered_at=triggered_at,
        )
        self.session.add(request)
        await self.session.commit()

        logger.info(f"User {user.id} triggered scraping for {keyword!r} in {city!r}")
        return ScrapeResult(request_id=request.id, sheet_url=sheet_url, data=data)

    async def list_venues(self, params: Mapping[str, Any]) -> VenuePage:
        """Filter, search, sort and paginate scraped venues."""
        query = self.builder.build(params)

        total = await self.session.scalar(query.count_statement(ScrapedVenue)) or 0
        statement = query.page_statement(select(ScrapedVenue)).order_by(ScrapedVenue.id)
        venues = (await self.session.execute(statement)).scalars().all()

        return VenuePage(items=list(venues), pagination=query.pagination(total))
