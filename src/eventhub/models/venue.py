"""Venue scraping models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ScrapeTriggerRequest(BaseModel):
    """Parameters forwarded to the venue scraping workflow."""

    city: str = Field(..., min_length=2, max_length=100)
    keyword: str = Field(..., min_length=2, max_length=100)
