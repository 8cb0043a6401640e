"""Tests for the database state store."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.future import select

from core.domain.entities import Account, AccountStatus, Domain
from core.domain.ports import ConfigPort
from adapters.db.database import DatabaseAdapter
from adapters.db.models import HubSpotAccountModel
from adapters.db.repositories import DatabaseStateStoreAdapter
from adapters.external.encryption_service import EncryptionServiceAdapter


@pytest_asyncio.fixture
async def database(tmp_path):
    config = MagicMock(spec=ConfigPort)
    config.get_database_url.return_value = f"sqlite+aiosqlite:///{tmp_path / 'state.db'}"

    adapter = DatabaseAdapter(config)
    await adapter.initialize()
    await adapter.create_tables()
    yield adapter
    await adapter.close()


@pytest.fixture
def store(database, logger):
    encryption_service = EncryptionServiceAdapter("test_encryption_key_32_bytes_long", logger)
    return DatabaseStateStoreAdapter(database, encryption_service, logger)


def make_domain() -> Domain:
    account = Account(
        hub_id="1001",
        access_token="access-1001",
        refresh_token="refresh-1001",
        expires_at=datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc),
        last_pulled_dates={
            "contacts": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            "companies": datetime(2023, 12, 31, 8, 15, 30, tzinfo=timezone.utc),
        },
    )
    return Domain(api_key="test-api-key", accounts=[account, Account(hub_id="2002", refresh_token="refresh-2002")])


@pytest.mark.asyncio
async def test_load_without_state_returns_none(store):
    assert await store.load_state() is None


@pytest.mark.asyncio
async def test_save_and_load_round_trip(store):
    domain = make_domain()

    await store.save_state(domain)
    loaded = await store.load_state()

    assert loaded.id == domain.id
    assert loaded.api_key == "test-api-key"
    assert [account.hub_id for account in loaded.accounts] == ["1001", "2002"]

    first = loaded.accounts[0]
    assert first.access_token == "access-1001"
    assert first.refresh_token == "refresh-1001"
    assert first.expires_at == datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)
    assert first.last_pulled_dates == domain.accounts[0].last_pulled_dates
    assert first.status == AccountStatus.ACTIVE

    second = loaded.accounts[1]
    assert second.access_token is None
    assert second.expires_at is None
    assert second.last_pulled_dates == {}


@pytest.mark.asyncio
async def test_save_is_idempotent_and_updates_in_place(store, database):
    domain = make_domain()
    await store.save_state(domain)
    await store.save_state(domain)

    domain.accounts[0].advance_watermark("meetings", datetime(2024, 2, 1, tzinfo=timezone.utc))
    domain.accounts[1].status = AccountStatus.INACTIVE
    domain.accounts[1].last_sync_at = datetime(2024, 2, 1, 6, 0, tzinfo=timezone.utc)
    await store.save_state(domain)

    loaded = await store.load_state()
    assert loaded.accounts[0].get_watermark("meetings") == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert loaded.accounts[1].status == AccountStatus.INACTIVE
    assert loaded.accounts[1].last_sync_at == datetime(2024, 2, 1, 6, 0, tzinfo=timezone.utc)

    async with database.get_session() as session:
        result = await session.execute(select(HubSpotAccountModel))
        rows = result.scalars().all()
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_tokens_are_encrypted_at_rest(store, database):
    await store.save_state(make_domain())

    async with database.get_session() as session:
        result = await session.execute(
            select(HubSpotAccountModel).where(HubSpotAccountModel.hub_id == "1001")
        )
        row = result.scalar_one()

    assert row.refresh_token != "refresh-1001"
    assert row.access_token != "access-1001"
    assert "refresh-1001" not in row.refresh_token


@pytest.mark.asyncio
async def test_new_account_is_appended(store):
    domain = make_domain()
    await store.save_state(domain)

    domain.accounts.append(Account(hub_id="3003", refresh_token="refresh-3003"))
    await store.save_state(domain)

    loaded = await store.load_state()
    assert [account.hub_id for account in loaded.accounts] == ["1001", "2002", "3003"]
