# tests/test_client.py
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from pocketbase_sdk.core.config import settings
from pocketbase_sdk.core.exceptions import (
    InvalidResponseError,
    NoRecordsFoundError,
    PocketBaseAPIError,
    PocketBaseConnectionError,
    RecordNotFoundError,
)
from pocketbase_sdk.pocketbase.client import PocketBaseApiClient

from conftest import json_response

pytestmark = pytest.mark.asyncio


def query_of(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(str(request.url)).query).items()}


# --- Create ---
async def test_create_record_posts_json_and_returns_record(mock_http_client, captured_requests, record_factory):
    created = record_factory("abc123def456ghi", title="Hello")
    client = mock_http_client(lambda request: json_response(200, created))

    result = await client.create_record("posts", {"title": "Hello"})
    await client.aclose()

    assert result["id"] == "abc123def456ghi"
    request = captured_requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/collections/posts/records"
    assert json.loads(request.content) == {"title": "Hello"}
    assert request.headers["Authorization"] == "Bearer test_token"
    assert request.headers["Content-Type"] == "application/json"


async def test_create_record_http_error_carries_status_and_body(mock_http_client):
    client = mock_http_client(lambda request: json_response(400, {"code": 400, "message": "Failed to create record."}))

    with pytest.raises(PocketBaseAPIError) as exc_info:
        await client.create_record("posts", {"title": ""})
    await client.aclose()

    assert exc_info.value.status_code == 400
    assert "Failed to create record." in exc_info.value.response_body
    assert str(exc_info.value).startswith("HTTP 400: ")


async def test_create_record_invalid_json_response(mock_http_client):
    client = mock_http_client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(InvalidResponseError):
        await client.create_record("posts", {"title": "x"})
    await client.aclose()


# --- Read ---
async def test_get_records_builds_filter_query(mock_http_client, captured_requests, record_factory):
    client = mock_http_client(lambda request: json_response(200, {"items": [record_factory("r1", name="John")]}))

    items = await client.get_records("users", {"name": "John", "active": True}, expand="team")
    await client.aclose()

    assert [item["id"] for item in items] == ["r1"]
    query = query_of(captured_requests[0])
    assert query["filter"] == "(name='John' && active=true)"
    assert query["perPage"] == str(settings.POCKETBASE_LIST_PAGE_SIZE)
    assert query["expand"] == "team"


async def test_get_records_empty_result_raises(mock_http_client):
    client = mock_http_client(lambda request: json_response(200, {"items": []}))

    with pytest.raises(NoRecordsFoundError):
        await client.get_records("users", {"name": "Nobody"})
    await client.aclose()


async def test_get_all_empty_collection_is_not_an_error(mock_http_client, captured_requests):
    client = mock_http_client(lambda request: json_response(200, {"page": 1, "items": []}))

    items = await client.get_all("posts")
    await client.aclose()

    assert items == []
    assert "filter" not in query_of(captured_requests[0])


async def test_get_all_rejects_body_without_items(mock_http_client):
    client = mock_http_client(lambda request: json_response(200, ["not", "an", "envelope"]))

    with pytest.raises(InvalidResponseError):
        await client.get_all("posts")
    await client.aclose()


@pytest.mark.parametrize("payload", [
    {"code": 200, "message": "ok"},
    {"page": 1, "items": None},
    {"page": 1, "items": {"id": "r1"}},
])
async def test_get_all_rejects_envelope_without_items_array(mock_http_client, payload):
    client = mock_http_client(lambda request: json_response(200, payload))

    with pytest.raises(InvalidResponseError):
        await client.get_all("posts")
    await client.aclose()


async def test_get_records_rejects_envelope_without_items_array(mock_http_client):
    client = mock_http_client(lambda request: json_response(200, {"code": 200, "message": "ok"}))

    with pytest.raises(InvalidResponseError):
        await client.get_records("users", {"name": "John"})
    await client.aclose()


async def test_get_all_follows_total_pages(mock_http_client, captured_requests, record_factory):
    pages = {
        "1": {"page": 1, "totalPages": 3, "items": [record_factory("r1"), record_factory("r2")]},
        "2": {"page": 2, "totalPages": 3, "items": [record_factory("r3")]},
        "3": {"page": 3, "totalPages": 3, "items": [record_factory("r4")]},
    }
    client = mock_http_client(lambda request: json_response(200, pages[query_of(request)["page"]]))

    items = await client.get_all("posts")
    await client.aclose()

    assert [item["id"] for item in items] == ["r1", "r2", "r3", "r4"]
    assert [query_of(r)["page"] for r in captured_requests] == ["1", "2", "3"]
    assert all(query_of(r)["perPage"] == str(settings.POCKETBASE_LIST_PAGE_SIZE) for r in captured_requests)


async def test_get_records_follows_total_pages_with_same_filter(mock_http_client, captured_requests, record_factory):
    pages = {
        "1": {"page": 1, "totalPages": 2, "items": [record_factory("r1", name="John")]},
        "2": {"page": 2, "totalPages": 2, "items": [record_factory("r2", name="John")]},
    }
    client = mock_http_client(lambda request: json_response(200, pages[query_of(request)["page"]]))

    items = await client.get_records("users", {"name": "John"})
    await client.aclose()

    assert [item["id"] for item in items] == ["r1", "r2"]
    assert {query_of(r)["filter"] for r in captured_requests} == {"(name='John')"}


async def test_get_all_stops_on_empty_page(mock_http_client, captured_requests, record_factory):
    def handler(request):
        if query_of(request)["page"] == "1":
            return json_response(200, {"page": 1, "totalPages": 5, "items": [record_factory("r1")]})
        return json_response(200, {"page": 2, "totalPages": 5, "items": []})

    client = mock_http_client(handler)

    items = await client.get_all("posts")
    await client.aclose()

    assert [item["id"] for item in items] == ["r1"]
    assert len(captured_requests) == 2


async def test_get_record_not_found(mock_http_client):
    client = mock_http_client(lambda request: json_response(404, {"code": 404, "message": "The requested resource wasn't found."}))

    with pytest.raises(RecordNotFoundError) as exc_info:
        await client.get_record("posts", "missing")
    await client.aclose()

    assert exc_info.value.status_code == 404
    assert isinstance(exc_info.value, PocketBaseAPIError)


# --- Update / Delete ---
async def test_update_record_patches_by_id(mock_http_client, captured_requests, record_factory):
    client = mock_http_client(lambda request: json_response(200, record_factory("r1", title="New")))

    result = await client.update_record("posts", "r1", {"title": "New"})
    await client.aclose()

    assert result["title"] == "New"
    assert captured_requests[0].method == "PATCH"
    assert captured_requests[0].url.path == "/api/collections/posts/records/r1"


async def test_delete_record_accepts_empty_204(mock_http_client, captured_requests):
    client = mock_http_client(lambda request: httpx.Response(204))

    await client.delete_record("posts", "r1")
    await client.aclose()

    assert captured_requests[0].method == "DELETE"
    assert captured_requests[0].url.path == "/api/collections/posts/records/r1"


# --- Transport failures ---
async def test_network_failure_raises_connection_error(mock_http_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = mock_http_client(handler)

    with pytest.raises(PocketBaseConnectionError):
        await client.get_all("posts")
    await client.aclose()


async def test_client_context_manager_closes_http_client(record_factory):
    transport = httpx.MockTransport(lambda request: json_response(200, {"items": []}))
    async with PocketBaseApiClient("http://pb.test/", "tok", transport=transport) as client:
        await client.get_all("posts")
        assert client._http is not None
    assert client._http is None
    assert client.base_url == "http://pb.test"


async def test_no_authorization_header_without_token():
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        return json_response(200, {"items": []})

    async with PocketBaseApiClient("http://pb.test", "", transport=httpx.MockTransport(handler)) as client:
        await client.get_all("posts")

    assert "Authorization" not in seen["headers"]
