# tests/conftest.py
import json
import os
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock

import httpx
import pytest

# Settings are read at import time, so the environment is prepared first.
os.environ["DEBUG_MODE"] = "True"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FILENAME"] = ""  # No file logging during tests
os.environ["POCKETBASE_URL"] = "http://source.test"
os.environ["POCKETBASE_TOKEN"] = "source_token"

from pocketbase_sdk.pocketbase.client import PocketBaseApiClient  # noqa: E402


def make_record(record_id: str, collection: str = "posts", **fields: Any) -> Dict[str, Any]:
    """A record as PocketBase returns it, metadata included."""
    record = {
        "id": record_id,
        "collectionId": "pbc_123456789",
        "collectionName": collection,
        "created": "2025-01-20 10:00:00.000Z",
        "updated": "2025-01-20 10:00:00.000Z",
    }
    record.update(fields)
    return record


def json_response(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))


@pytest.fixture
def record_factory() -> Callable[..., Dict[str, Any]]:
    return make_record


@pytest.fixture
def captured_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def mock_http_client(captured_requests: List[httpx.Request]):
    """
    Builds a PocketBaseApiClient whose requests are answered by `handler`
    through httpx.MockTransport. Every request is also appended to captured_requests.
    """
    def build(handler: Callable[[httpx.Request], httpx.Response]) -> PocketBaseApiClient:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            captured_requests.append(request)
            return handler(request)

        return PocketBaseApiClient(
            "http://pb.test", "test_token", transport=httpx.MockTransport(recording_handler)
        )

    return build


@pytest.fixture
def mock_pocketbase_client() -> AsyncMock:
    client = AsyncMock(spec=PocketBaseApiClient)
    client.base_url = "http://pb.test"
    return client


@pytest.fixture
def mock_source_client() -> AsyncMock:
    client = AsyncMock(spec=PocketBaseApiClient)
    client.base_url = "http://source.test"
    return client


@pytest.fixture
def mock_destination_client() -> AsyncMock:
    client = AsyncMock(spec=PocketBaseApiClient)
    client.base_url = "http://destination.test"
    return client
