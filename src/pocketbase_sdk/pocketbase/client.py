# src/pocketbase_sdk/pocketbase/client.py
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from pocketbase_sdk.core.config import settings
from pocketbase_sdk.core.exceptions import (
    InvalidResponseError,
    NoRecordsFoundError,
    PocketBaseAPIError,
    PocketBaseConnectionError,
    RecordNotFoundError,
)
from pocketbase_sdk.core.schemas import BulkResult, MigrationConfig, MigrationResult, UpsertItem
from pocketbase_sdk.pocketbase import bulk, migration
from pocketbase_sdk.utils.data_handler import build_filter

logger = logging.getLogger(settings.APP_NAME)


class PocketBaseApiClient:
    """
    An asynchronous client for the PocketBase records REST API.
    Handles request authentication, JSON encoding, and maps HTTP failures onto
    the package's exception types. Failed requests are never retried.

    One httpx.AsyncClient is shared by every request made through an instance,
    so bulk calls reuse pooled connections. Use `async with` or call `aclose()`.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else settings.POCKETBASE_REQUEST_TIMEOUT
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "PocketBaseApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"{settings.APP_NAME}/{settings.APP_VERSION}",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._get_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
    ) -> bytes:
        """
        Makes an HTTP request to the PocketBase API and returns the raw body.
        Raises PocketBaseAPIError for status >= 400 and PocketBaseConnectionError
        when no response was received.
        """
        client = self._get_http_client()
        url = f"{self.base_url}{endpoint}"
        try:
            logger.debug(f"PocketBase API Request: {method} {url} | Params: {params} | Body: {json.dumps(json_data) if json_data is not None else None}")
            response = await client.request(method, endpoint, params=params, json=json_data)
        except httpx.RequestError as e:  # Covers network errors, timeouts, etc.
            logger.error(f"PocketBase API RequestError: {e.__class__.__name__} on {method} {url}. Detail: {str(e)}", exc_info=settings.DEBUG_MODE)
            raise PocketBaseConnectionError(f"request failed: {e.__class__.__name__}: {e}") from e

        logger.debug(f"PocketBase API Response: {response.status_code} {response.text[:500]}")

        if response.status_code >= 400:
            error_cls = RecordNotFoundError if response.status_code == 404 else PocketBaseAPIError
            logger.warning(f"PocketBase API error: {response.status_code} on {method} {url}. Detail: {response.text[:500]}")
            raise error_cls(response.status_code, response.text, method=method, url=url)

        return response.content

    @staticmethod
    def _decode(body: bytes, context: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise InvalidResponseError(f"failed to decode {context} response: {e}") from e

    @staticmethod
    def _records_endpoint(collection: str, record_id: Optional[str] = None) -> str:
        endpoint = f"/api/collections/{collection}/records"
        if record_id:
            endpoint = f"{endpoint}/{record_id}"
        return endpoint

    def _list_params(self, filter_expr: Optional[str] = None, expand: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"perPage": settings.POCKETBASE_LIST_PAGE_SIZE}
        if filter_expr:
            params["filter"] = filter_expr
        if expand:
            params["expand"] = expand
        return params

    def _page(self, body: bytes) -> Tuple[List[Dict[str, Any]], int]:
        """Decodes one list page into (items, totalPages). totalPages defaults to 1."""
        payload = self._decode(body, "list")
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            raise InvalidResponseError("list response has no 'items' array")
        total_pages = payload.get("totalPages")
        return payload["items"], total_pages if isinstance(total_pages, int) and total_pages > 0 else 1

    async def _list(self, collection: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Fetches every page of a list query, following page/totalPages."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            page_params = {**params, "page": page}
            body = await self._request("GET", self._records_endpoint(collection), params=page_params)
            page_items, total_pages = self._page(body)
            items.extend(page_items)
            if page >= total_pages or not page_items:
                return items
            logger.debug(f"Fetched page {page}/{total_pages} of {collection}")
            page += 1

    # --- Single record operations ---

    async def create_record(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Creates a record and returns it as stored, including its new `id`."""
        body = await self._request("POST", self._records_endpoint(collection), json_data=data)
        return self._decode(body, "create record")

    async def get_record(self, collection: str, record_id: str, expand: Optional[str] = None) -> Dict[str, Any]:
        params = {"expand": expand} if expand else None
        body = await self._request("GET", self._records_endpoint(collection, record_id), params=params)
        return self._decode(body, "get record")

    async def get_records(
        self, collection: str, filters: Dict[str, Any], expand: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Returns every record matching all `filters` (field equality, joined with &&).
        Raises NoRecordsFoundError when the query matched nothing.
        """
        params = self._list_params(build_filter(filters), expand)
        items = await self._list(collection, params)
        if not items:
            raise NoRecordsFoundError(f"no records found in {collection} for filter {params.get('filter')}")
        return items

    async def get_all(self, collection: str, expand: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Returns the whole collection. An empty collection gives [].
        Asks for everything in one page, and follows totalPages when the server caps perPage.
        """
        return await self._list(collection, self._list_params(expand=expand))

    async def update_record(self, collection: str, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("PATCH", self._records_endpoint(collection, record_id), json_data=data)
        return self._decode(body, "update record")

    async def delete_record(self, collection: str, record_id: str) -> None:
        await self._request("DELETE", self._records_endpoint(collection, record_id))

    # --- Bulk operations ---

    async def create_many(self, collection: str, records: Sequence[Dict[str, Any]]) -> BulkResult:
        return await bulk.create_many(self, collection, records)

    async def update_many(self, collection: str, updates: Sequence[Dict[str, Any]]) -> BulkResult:
        return await bulk.update_many(self, collection, updates)

    async def delete_many(self, collection: str, ids: Sequence[str]) -> BulkResult:
        return await bulk.delete_many(self, collection, ids)

    async def upsert_many(self, collection: str, items: Sequence[UpsertItem]) -> BulkResult:
        return await bulk.upsert_many(self, collection, items)

    # --- Migration ---

    async def migrate_collection(self, config: MigrationConfig) -> MigrationResult:
        """Copies `config.collection_name` from this instance to the configured destination."""
        return await migration.migrate_collection(self, config)
