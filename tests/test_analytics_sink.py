"""Tests for the analytics sink adapters."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from core.domain.entities import ActionEvent
from core.domain.exceptions import RemoteCallError
from adapters.external.analytics_sink import HttpAnalyticsSinkAdapter, InMemoryAnalyticsSinkAdapter

SINK_URL = "https://analytics.test/actions"


@pytest.fixture
def events():
    return [
        ActionEvent(
            action_name="Contact Created",
            action_date=datetime(2023, 6, 1, 10, 0, tzinfo=timezone.utc),
            identity="jane@example.com",
            user_properties={"contact_score": 42},
        ),
        ActionEvent(
            action_name="Company Updated",
            action_date=datetime(2023, 6, 1, 9, 59, 58, tzinfo=timezone.utc),
            company_properties={"company_id": "555"},
        ),
    ]


@pytest.mark.asyncio
async def test_http_sink_posts_actions(logger, events):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(202)

    sink = HttpAnalyticsSinkAdapter(SINK_URL, logger, transport=httpx.MockTransport(handler))

    await sink.submit_batch("test-api-key", events)

    request = captured["request"]
    assert str(request.url) == SINK_URL
    assert json.loads(request.content) == {
        "apiKey": "test-api-key",
        "actions": [
            {
                "actionName": "Contact Created",
                "actionDate": "2023-06-01T10:00:00+00:00",
                "includeInAnalytics": 0,
                "identity": "jane@example.com",
                "userProperties": {"contact_score": 42},
            },
            {
                "actionName": "Company Updated",
                "actionDate": "2023-06-01T09:59:58+00:00",
                "includeInAnalytics": 0,
                "companyProperties": {"company_id": "555"},
            },
        ],
    }


@pytest.mark.asyncio
async def test_http_sink_error_status_raises(logger, events):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal error")

    sink = HttpAnalyticsSinkAdapter(SINK_URL, logger, transport=httpx.MockTransport(handler))

    with pytest.raises(RemoteCallError) as exc_info:
        await sink.submit_batch("test-api-key", events)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_in_memory_sink_keeps_batches(logger, events):
    sink = InMemoryAnalyticsSinkAdapter(logger)

    await sink.submit_batch("test-api-key", events[:1])
    await sink.submit_batch("test-api-key", events[1:])

    assert [len(batch) for batch in sink.batches] == [1, 1]
    assert sink.events == events
