"""FastAPI application and routes.

This module provides the JSON API consumed by the EventHub frontend.

## API Structure

- /api/auth - Registration, login and Google sign-in
- /api/events - Event listing and management
- /api/favorites - Per-user favorites
- /api/scraping - Venue scraping workflow and results
- /api/ai - Assistant chat proxy
- /api/health - Health check

## Authentication

Protected endpoints accept the session token from the ``token`` cookie or
an ``Authorization: Bearer`` header. Tokens are issued by login,
registration and Google sign-in.
"""

from eventhub.api.app import create_app

__all__ = ["create_app"]
