"""Domain services for events, favorites, venue scraping and the assistant.

Services take an `AsyncSession` (and, where needed, a webhook client) and
raise `eventhub.errors` exceptions; the API layer turns those into HTTP
responses.
"""

from eventhub.services.assistant import AssistantService
from eventhub.services.events import EventListing, EventPage, EventService
from eventhub.services.favorites import FavoriteListing, FavoriteService
from eventhub.services.scraping import ScrapeResult, ScrapingService, VenuePage
from eventhub.services.webhook import WorkflowWebhook, parse_reply

__all__ = [
    "AssistantService",
    "EventListing",
    "EventPage",
    "EventService",
    "FavoriteListing",
    "FavoriteService",
    "ScrapeResult",
    "ScrapingService",
    "VenuePage",
    "WorkflowWebhook",
    "parse_reply",
]
