"""Shared fixtures for the sync engine tests."""

import os

# Select the testing configuration before any config module is imported
os.environ.setdefault("ENVIRONMENT", "testing")

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.domain.entities import Account, AccountSession, Domain, RawRecord
from core.domain.ports import LoggerPort, StateStorePort


@pytest.fixture
def logger():
    """Create a mock logger that accepts structured context."""
    return MagicMock(spec=LoggerPort)


@pytest.fixture
def state_store():
    """Create a mock state store."""
    mock = MagicMock(spec=StateStorePort)
    mock.load_state = AsyncMock(return_value=None)
    mock.save_state = AsyncMock()
    return mock


@pytest.fixture
def account():
    """Create an account holding a valid access token."""
    return Account(
        hub_id="1001",
        access_token="access-1001",
        refresh_token="refresh-1001",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def domain(account):
    """Create a domain with a single account."""
    return Domain(api_key="test-api-key", accounts=[account])


@pytest.fixture
def session(account):
    """Create a token session for the account."""
    return AccountSession.for_account(account)


@pytest.fixture
def make_record():
    """Build a raw HubSpot record."""

    def _make(record_id, created_at, updated_at=None, **properties):
        return RawRecord(
            id=str(record_id),
            createdAt=created_at,
            updatedAt=updated_at or created_at,
            properties=properties or None,
        )

    return _make
