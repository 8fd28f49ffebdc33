"""HTTP client for n8n workflow webhooks.

Both the venue scraping workflow and the assistant workflow are triggered
by POSTing JSON to a webhook URL. Replies are not always JSON (n8n answers
with plain text such as ``success`` depending on the workflow's response
node), so the client hands back the raw text and callers decide how to
interpret it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from eventhub.errors import WebhookError

logger = logging.getLogger(__name__)


class WorkflowWebhook:
    """Client for a single workflow webhook.

    Example:
        ```python
        webhook = WorkflowWebhook("https://n8n.example.com/webhook/scrape")
        text = await webhook.post({"city": "Paris", "keyword": "jazz"})
        payload = parse_reply(text, fallback_key="message")
        ```
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            url: Webhook URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def post(self, payload: dict[str, Any]) -> str:
        """POST ``payload`` as JSON and return the response body text.

        Raises:
            WebhookError: If the request fails or the webhook answers with
                an error status
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.url,
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Workflow webhook unreachable: {e}")
            raise WebhookError("Workflow webhook is unreachable") from e

        if response.status_code >= 400:
            logger.error(
                f"Workflow webhook error {response.status_code}: {response.text[:500]}"
            )
            raise WebhookError(
                f"n8n webhook responded with status {response.status_code}",
                status=response.status_code,
                response_body=response.text,
            )

        return response.text


def parse_reply(text: str, fallback_key: str) -> Any:
    """Decode a webhook reply.

    Empty replies become ``{}``. Replies that are not JSON are wrapped as
    ``{fallback_key: text}``.
    """
    if not text or not text.strip():
        return {}
    try:
        return json.loads(text)
    except ValueError:
        logger.info(f"Workflow webhook returned non-JSON reply: {text[:200]}")
        return {fallback_key: text}
