"""Tests for the pagination controller and search request building."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import AsyncMock

import pytest

from core.domain.entities import (
    PageCursor,
    PaginationState,
    RawRecord,
    SearchPage,
    SyncStatus,
    to_epoch_millis,
)
from core.domain.exceptions import RemoteCallError, SyncAbortedError
from core.usecases.batching import ActionBatchBuffer
from core.usecases.pagination import PaginationController, build_search_request
from core.usecases.token_management import TokenRetryController
from core.usecases.transformation import COMPANY_ENTITY, CONTACT_ENTITY, EntityTransformer
from adapters.external.analytics_sink import InMemoryAnalyticsSinkAdapter

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeSearchApi:
    """In-memory search endpoint that honours the date filter, sort and offset."""

    def __init__(self, records: List[RawRecord], failures: int = 0):
        self.records = sorted(records, key=lambda record: record.updated_at)
        self.failures = failures
        self.requests: List[dict] = []
        self.object_types: List[str] = []

    async def search(self, access_token: str, object_type: str, search_request: dict) -> SearchPage:
        self.requests.append(search_request)
        self.object_types.append(object_type)

        if self.failures:
            self.failures -= 1
            raise RemoteCallError("service unavailable", status_code=503)

        matching = self.records
        for group in search_request["filterGroups"]:
            for search_filter in group["filters"]:
                bound = datetime.fromtimestamp(int(search_filter["value"]) / 1000, tz=timezone.utc)
                if search_filter["operator"] == "GTE":
                    matching = [record for record in matching if record.updated_at >= bound]
                else:
                    matching = [record for record in matching if record.updated_at <= bound]

        offset = search_request.get("after") or 0
        limit = search_request["limit"]
        page = matching[offset:offset + limit]
        next_after = offset + limit if offset + limit < len(matching) else None
        return SearchPage(records=page, next_after=next_after)

    async def get_associations(self, access_token: str, meeting_id: str, to_object_type: str = "contacts"):
        return []

    async def refresh_token(self, client_id: str, client_secret: str, refresh_token: str) -> dict:
        return {"access_token": "fresh-token", "expires_in": 1800}


def make_contacts(count: int, same_timestamp: bool = False) -> List[RawRecord]:
    records = []
    for i in range(count):
        updated = BASE_TIME if same_timestamp else BASE_TIME + timedelta(seconds=i)
        records.append(
            RawRecord(
                id=str(i),
                createdAt=BASE_TIME - timedelta(days=1),
                updatedAt=updated,
                properties={"email": f"contact{i}@example.com"},
            )
        )
    return records


def make_controller(api, state_store, logger, offset_ceiling: int = 9900) -> PaginationController:
    token_controller = TokenRetryController(
        crm_api_client=api,
        client_id="client-id",
        client_secret="client-secret",
        logger=logger,
        sleep=AsyncMock(),
    )
    return PaginationController(
        crm_api_client=api,
        token_controller=token_controller,
        transformer=EntityTransformer(crm_api_client=api, logger=logger),
        state_store=state_store,
        logger=logger,
        offset_ceiling=offset_ceiling,
    )


@pytest.fixture
def sink(logger):
    return InMemoryAnalyticsSinkAdapter(logger=logger)


@pytest.fixture
def buffer(sink, logger):
    return ActionBatchBuffer(sink, "test-api-key", logger)


def processed_ids(sink) -> List[str]:
    return [event.identity for event in sink.events]


def test_search_request_without_window_has_no_filter():
    now = BASE_TIME
    request = build_search_request(CONTACT_ENTITY, PageCursor(), now)

    assert request == {
        "filterGroups": [],
        "sorts": [{"propertyName": "lastmodifieddate", "direction": "ASCENDING"}],
        "properties": CONTACT_ENTITY.properties,
        "limit": 100,
    }


def test_search_request_with_window_and_offset():
    window_start = BASE_TIME - timedelta(days=1)
    request = build_search_request(COMPANY_ENTITY, PageCursor(after=200, last_modified_date=window_start), BASE_TIME)

    assert request["after"] == 200
    assert request["filterGroups"] == [
        {
            "filters": [
                {"propertyName": "hs_lastmodifieddate", "operator": "GTE", "value": str(to_epoch_millis(window_start))},
                {"propertyName": "hs_lastmodifieddate", "operator": "LTE", "value": str(to_epoch_millis(BASE_TIME))},
            ]
        }
    ]


@pytest.mark.asyncio
async def test_full_sync_advances_watermark_and_saves(domain, session, state_store, logger, buffer, sink):
    api = FakeSearchApi(make_contacts(250))
    controller = make_controller(api, state_store, logger)
    before = datetime.now(timezone.utc)

    history = await controller.run(session, domain, CONTACT_ENTITY, buffer)
    await buffer.drain()

    watermark = domain.accounts[0].get_watermark("contacts")
    assert history.status == SyncStatus.SUCCESS
    assert history.page_count == 3
    assert history.pagination_state == PaginationState.DONE
    assert history.processed_count == 250
    assert history.action_count == 250
    assert before <= watermark <= datetime.now(timezone.utc)
    state_store.save_state.assert_awaited_once_with(domain)
    assert len(processed_ids(sink)) == 250
    assert api.object_types == ["contacts"] * 3
    assert "after" not in api.requests[0]
    assert [request["after"] for request in api.requests[1:]] == [100, 200]


@pytest.mark.asyncio
async def test_incremental_sync_filters_from_watermark(domain, session, state_store, logger, buffer):
    watermark = BASE_TIME + timedelta(seconds=40)
    domain.accounts[0].advance_watermark("contacts", watermark)
    api = FakeSearchApi(make_contacts(100))
    controller = make_controller(api, state_store, logger)

    history = await controller.run(session, domain, CONTACT_ENTITY, buffer)

    filters = api.requests[0]["filterGroups"][0]["filters"]
    assert filters[0]["value"] == str(to_epoch_millis(watermark))
    assert filters[0]["propertyName"] == "lastmodifieddate"
    assert history.processed_count == 60
    assert domain.accounts[0].get_watermark("contacts") > watermark


@pytest.mark.asyncio
async def test_offset_ceiling_rolls_window_once(domain, session, state_store, logger, buffer, sink):
    records = make_contacts(12000)
    api = FakeSearchApi(records)
    controller = make_controller(api, state_store, logger)

    history = await controller.run(session, domain, CONTACT_ENTITY, buffer)
    await buffer.drain()

    ids = processed_ids(sink)
    assert history.status == SyncStatus.SUCCESS
    assert history.rollover_count == 1
    assert history.pagination_state == PaginationState.DONE
    # Only the boundary record is seen twice
    assert len(ids) == 12001
    assert len(set(ids)) == 12000
    assert len(set(ids[:9900])) == 9900

    rollover_request = api.requests[99]
    assert "after" not in rollover_request
    assert rollover_request["filterGroups"][0]["filters"][0]["value"] == str(
        to_epoch_millis(records[9899].updated_at)
    )
    assert all(request.get("after", 0) < 9900 for request in api.requests)


@pytest.mark.asyncio
async def test_rollover_without_progress_aborts(domain, session, state_store, logger, buffer):
    api = FakeSearchApi(make_contacts(500, same_timestamp=True))
    controller = make_controller(api, state_store, logger, offset_ceiling=300)

    with pytest.raises(SyncAbortedError):
        await controller.run(session, domain, CONTACT_ENTITY, buffer)

    assert domain.accounts[0].get_watermark("contacts") is None
    state_store.save_state.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_failure_leaves_watermark_unchanged(domain, session, state_store, logger, buffer):
    watermark = BASE_TIME - timedelta(days=7)
    domain.accounts[0].advance_watermark("contacts", watermark)
    api = FakeSearchApi(make_contacts(10), failures=4)
    controller = make_controller(api, state_store, logger)

    with pytest.raises(SyncAbortedError):
        await controller.run(session, domain, CONTACT_ENTITY, buffer)

    assert len(api.requests) == 4
    assert domain.accounts[0].get_watermark("contacts") == watermark
    state_store.save_state.assert_not_awaited()


@pytest.mark.asyncio
async def test_transient_failure_is_retried(domain, session, state_store, logger, buffer):
    api = FakeSearchApi(make_contacts(10), failures=2)
    controller = make_controller(api, state_store, logger)

    history = await controller.run(session, domain, CONTACT_ENTITY, buffer)

    assert history.status == SyncStatus.SUCCESS
    assert history.processed_count == 10
    assert len(api.requests) == 3


@pytest.mark.asyncio
async def test_companies_use_their_own_endpoint_and_property(domain, session, state_store, logger, buffer, sink):
    records = [
        RawRecord(
            id="c1",
            createdAt=BASE_TIME,
            updatedAt=BASE_TIME,
            properties={"domain": "acme.com", "industry": "SOFTWARE"},
        )
    ]
    api = FakeSearchApi(records)
    controller = make_controller(api, state_store, logger)

    await controller.run(session, domain, COMPANY_ENTITY, buffer)
    await buffer.drain()

    assert api.object_types == ["companies"]
    assert api.requests[0]["sorts"][0]["propertyName"] == "hs_lastmodifieddate"
    assert sink.events[0].company_properties["company_domain"] == "acme.com"
    assert domain.accounts[0].get_watermark("companies") is not None
    assert domain.accounts[0].get_watermark("contacts") is None


def _first_filter_value(request: dict) -> Optional[str]:
    groups = request["filterGroups"]
    return groups[0]["filters"][0]["value"] if groups else None


@pytest.mark.asyncio
async def test_every_page_of_a_run_shares_the_same_upper_bound(domain, session, state_store, logger, buffer):
    domain.accounts[0].advance_watermark("contacts", BASE_TIME - timedelta(days=1))
    api = FakeSearchApi(make_contacts(300))
    controller = make_controller(api, state_store, logger)

    await controller.run(session, domain, CONTACT_ENTITY, buffer)

    upper_bounds = {request["filterGroups"][0]["filters"][1]["value"] for request in api.requests}
    assert len(upper_bounds) == 1
    assert {_first_filter_value(request) for request in api.requests} == {
        str(to_epoch_millis(BASE_TIME - timedelta(days=1)))
    }
