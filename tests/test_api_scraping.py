"""Tests for the scraping and assistant workflow proxies."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import select

from eventhub.api.dependencies import get_assistant_webhook, get_scraping_webhook
from eventhub.database import ScrapedVenue, ScrapeRequest
from eventhub.errors import WebhookError
from eventhub.services.assistant import extract_reply
from eventhub.services.webhook import WorkflowWebhook, parse_reply


class FakeWorkflow:
    """Records webhook calls and answers with a canned response."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.payloads: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        return self.response

    def webhook(self, url: str = "https://n8n.example.com/webhook/test") -> WorkflowWebhook:
        return WorkflowWebhook(url, transport=httpx.MockTransport(self))


@pytest.fixture
def workflow() -> FakeWorkflow:
    return FakeWorkflow(httpx.Response(200, json={"sheetUrl": "https://sheets.example.com/1"}))


@pytest.fixture
def scraping_app(app, workflow: FakeWorkflow):
    app.dependency_overrides[get_scraping_webhook] = workflow.webhook
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def assistant_app(app, workflow: FakeWorkflow):
    app.dependency_overrides[get_assistant_webhook] = workflow.webhook
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def alice(register) -> dict:
    return await register("alice", "alice@example.com")


class TestWorkflowWebhook:
    """Tests for the shared webhook client."""

    async def test_returns_body_text(self):
        workflow = FakeWorkflow(httpx.Response(200, text="queued"))
        assert await workflow.webhook().post({"a": 1}) == "queued"
        assert workflow.payloads == [{"a": 1}]

    async def test_error_status(self):
        workflow = FakeWorkflow(httpx.Response(500, text="boom"))

        with pytest.raises(WebhookError) as exc_info:
            await workflow.webhook().post({})

        assert exc_info.value.status == 500
        assert exc_info.value.response_body == "boom"
        assert exc_info.value.message == "n8n webhook responded with status 500"

    async def test_unreachable(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        webhook = WorkflowWebhook("https://n8n.example.com", transport=httpx.MockTransport(refuse))
        with pytest.raises(WebhookError):
            await webhook.post({})

    def test_parse_reply(self):
        assert parse_reply("", "message") == {}
        assert parse_reply('{"ok": true}', "message") == {"ok": True}
        assert parse_reply("Workflow started", "message") == {"message": "Workflow started"}


class TestTriggerScraping:
    """Tests for POST /api/scraping/trigger."""

    async def test_not_configured(self, client: httpx.AsyncClient, alice: dict):
        response = await client.post(
            "/api/scraping/trigger", json={"city": "Paris", "keyword": "jazz"}, headers=alice
        )

        assert response.status_code == 503
        assert response.json()["message"] == "Scraping service is not configured"

    async def test_requires_authentication(self, scraping_app, client: httpx.AsyncClient):
        response = await client.post(
            "/api/scraping/trigger", json={"city": "Paris", "keyword": "jazz"}
        )
        assert response.status_code == 401

    async def test_trigger(
        self, scraping_app, client: httpx.AsyncClient, alice: dict, workflow: FakeWorkflow, database
    ):
        response = await client.post(
            "/api/scraping/trigger", json={"city": "Paris", "keyword": "jazz"}, headers=alice
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Scraping workflow triggered successfully"
        assert body["sheetUrl"] == "https://sheets.example.com/1"

        payload = workflow.payloads[0]
        assert payload["city"] == "Paris"
        assert payload["keyword"] == "jazz"
        assert payload["userEmail"] == "alice@example.com"
        assert datetime.fromisoformat(payload["triggeredAt"]).tzinfo is not None

        async with database.session() as session:
            requests = (await session.scalars(select(ScrapeRequest))).all()
        assert [(r.city, r.keyword, r.sheet_url) for r in requests] == [
            ("Paris", "jazz", "https://sheets.example.com/1")
        ]

    async def test_plain_text_reply(
        self, scraping_app, client: httpx.AsyncClient, alice: dict, workflow: FakeWorkflow
    ):
        workflow.response = httpx.Response(200, text="Workflow was started")

        response = await client.post(
            "/api/scraping/trigger", json={"city": "Paris", "keyword": "jazz"}, headers=alice
        )

        body = response.json()
        assert body["sheetUrl"] is None
        assert body["data"] == {"message": "Workflow was started"}

    async def test_non_string_sheet_url_is_ignored(
        self, scraping_app, client: httpx.AsyncClient, alice: dict, workflow: FakeWorkflow, database
    ):
        workflow.response = httpx.Response(200, json={"sheetUrl": {"id": 12}})

        response = await client.post(
            "/api/scraping/trigger", json={"city": "Paris", "keyword": "jazz"}, headers=alice
        )

        assert response.status_code == 200
        assert response.json()["sheetUrl"] is None
        async with database.session() as session:
            request = await session.scalar(select(ScrapeRequest))
        assert request.sheet_url is None

    async def test_workflow_failure(
        self, scraping_app, client: httpx.AsyncClient, alice: dict, workflow: FakeWorkflow, database
    ):
        workflow.response = httpx.Response(500, text="internal error")

        response = await client.post(
            "/api/scraping/trigger", json={"city": "Paris", "keyword": "jazz"}, headers=alice
        )

        assert response.status_code == 502
        assert response.json()["success"] is False
        async with database.session() as session:
            assert (await session.scalars(select(ScrapeRequest))).all() == []

    async def test_validation(self, scraping_app, client: httpx.AsyncClient, alice: dict):
        response = await client.post(
            "/api/scraping/trigger", json={"city": "P"}, headers=alice
        )

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert fields == {"city", "keyword"}


class TestVenues:
    """Tests for GET /api/scraping/venues."""

    @pytest.fixture
    async def venues(self, database):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        async with database.session() as session:
            session.add_all(
                [
                    ScrapedVenue(title="Sunset Club", city="Paris", keyword="jazz",
                                 address="1 Rue A", scraped_at=now),
                    ScrapedVenue(title="Duc des Lombards", city="Paris", keyword="jazz",
                                 address="42 Rue des Lombards",
                                 scraped_at=now + timedelta(hours=1)),
                    ScrapedVenue(title="Ronnie Scott's", city="London", keyword="jazz",
                                 address="47 Frith St", scraped_at=now + timedelta(hours=2)),
                ]
            )
            await session.commit()

    async def test_newest_first(self, venues, client: httpx.AsyncClient, alice: dict):
        response = await client.get("/api/scraping/venues", headers=alice)

        body = response.json()
        assert [venue["title"] for venue in body["data"]] == [
            "Ronnie Scott's",
            "Duc des Lombards",
            "Sunset Club",
        ]
        assert body["pagination"]["limit"] == 20
        assert body["pagination"]["total"] == 3

    async def test_city_filter_and_search(self, venues, client: httpx.AsyncClient, alice: dict):
        response = await client.get(
            "/api/scraping/venues", params={"city": "Paris", "search": "lombards"}, headers=alice
        )
        assert [venue["title"] for venue in response.json()["data"]] == ["Duc des Lombards"]

    async def test_sort_by_title(self, venues, client: httpx.AsyncClient, alice: dict):
        response = await client.get(
            "/api/scraping/venues", params={"sort": "title", "order": "asc"}, headers=alice
        )
        assert [venue["title"] for venue in response.json()["data"]] == [
            "Duc des Lombards",
            "Ronnie Scott's",
            "Sunset Club",
        ]

    async def test_requires_authentication(self, client: httpx.AsyncClient):
        response = await client.get("/api/scraping/venues")
        assert response.status_code == 401


class TestAssistant:
    """Tests for POST /api/ai/chat."""

    conversation = [
        {"role": "user", "content": "Any concerts tonight?"},
        {"role": "assistant", "content": "Which city?"},
        {"role": "user", "content": "Paris"},
    ]

    async def test_not_configured(self, client: httpx.AsyncClient):
        response = await client.post("/api/ai/chat", json={"messages": self.conversation})

        assert response.status_code == 503
        assert response.json()["message"] == "AI Agent not configured"

    async def test_guest_chat(
        self, assistant_app, client: httpx.AsyncClient, workflow: FakeWorkflow
    ):
        workflow.response = httpx.Response(200, json=[{"output": "Try the Sunset Club."}])

        response = await client.post(
            "/api/ai/chat", json={"messages": self.conversation, "sessionId": "guest-123"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "choices": [{"message": {"content": "Try the Sunset Club."}}],
        }
        payload = workflow.payloads[0]
        assert payload["query"] == "Paris"
        assert payload["sessionId"] == "guest-123"
        assert payload["history"] == self.conversation

    async def test_guest_without_session_id(
        self, assistant_app, client: httpx.AsyncClient, workflow: FakeWorkflow
    ):
        await client.post("/api/ai/chat", json={"messages": self.conversation})
        assert workflow.payloads[0]["sessionId"] == "anonymous_guest"

    async def test_signed_in_session(
        self, assistant_app, client: httpx.AsyncClient, workflow: FakeWorkflow, alice: dict
    ):
        me = await client.get("/api/auth/me", headers=alice)
        user_id = me.json()["user"]["id"]

        await client.post(
            "/api/ai/chat",
            json={"messages": self.conversation, "sessionId": "guest-123"},
            headers=alice,
        )

        assert workflow.payloads[0]["sessionId"] == f"user_{user_id}"

    async def test_plain_text_reply(
        self, assistant_app, client: httpx.AsyncClient, workflow: FakeWorkflow
    ):
        workflow.response = httpx.Response(200, text="Sure, try Le Baiser Sale.")

        response = await client.post("/api/ai/chat", json={"messages": self.conversation})

        assert response.json()["choices"][0]["message"]["content"] == "Sure, try Le Baiser Sale."

    async def test_empty_reply(
        self, assistant_app, client: httpx.AsyncClient, workflow: FakeWorkflow
    ):
        workflow.response = httpx.Response(200, text="")

        response = await client.post("/api/ai/chat", json={"messages": self.conversation})

        assert response.status_code == 502
        assert "empty response" in response.json()["message"]

    async def test_no_user_message(
        self, assistant_app, client: httpx.AsyncClient, workflow: FakeWorkflow
    ):
        response = await client.post(
            "/api/ai/chat", json={"messages": [{"role": "assistant", "content": "Hi"}]}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No user message found"
        assert workflow.payloads == []


class TestExtractReply:
    def test_shapes(self):
        assert extract_reply("hello") == "hello"
        assert extract_reply([{"output": "a"}]) == "a"
        assert extract_reply({"output": "b"}) == "b"
        assert extract_reply({"text": "c"}) == "c"
        assert extract_reply([{"answer": "d"}]) == '{"answer": "d"}'
        assert extract_reply({}).startswith("I'm having trouble")
