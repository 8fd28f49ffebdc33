"""EventHub.

An event discovery API: browse, search and favorite events, manage the
events you created, sign in with a password or Google, and collect venue
listings through an external n8n scraping workflow.
"""

__version__ = "0.1.0"
