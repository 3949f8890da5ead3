"""Fixtures for web API tests."""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from nostr_rank.config import AppConfig
from nostr_rank.web.api import set_ranking_service
from nostr_rank.web.server import create_app


@pytest.fixture(autouse=True)
def reset_ranking_service() -> Iterator[None]:
    """Never leak a shared service between tests."""
    yield
    set_ranking_service(None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def mock_service() -> MagicMock:
    """Service double with ranks and last posts available."""
    service = MagicMock()
    service.config = AppConfig()
    service.has_ranks = AsyncMock(return_value=True)
    service.has_last_posts = AsyncMock(return_value=True)
    service.close = AsyncMock()
    return service
