"""HTTP remote store client — implements the RemoteRecordStore interface.

Talks to the fldr service (``/fldrs``, ``/fldrs/{id}``, ``/health``) with
httpx. Every failure to complete a request surfaces as RemoteStoreError so
the engine can treat it like being offline.
"""

import logging
from typing import Any

import httpx

from fldr_sync.application.interfaces import RemoteRecordStore
from fldr_sync.domain.entities import RecordData
from fldr_sync.domain.exceptions import EntityNotFoundError, RemoteStoreError

logger = logging.getLogger(__name__)


class HttpRecordStore(RemoteRecordStore):
    """Infrastructure adapter — connects to the remote fldr API.

    Uses an injected httpx.AsyncClient when given (connection pooling,
    tests with MockTransport/ASGITransport); otherwise a short-lived client
    per request.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8020/api/v1",
        *,
        resource: str = "fldrs",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._resource = resource.strip("/")
        self._timeout = timeout
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "http"

    def _url(self, *parts: str) -> str:
        return "/".join([self._base_url, self._resource, *parts])

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        should_close = self._http_client is None
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteStoreError(0, f"{method} {url} failed: {e}", self.provider_name) from e
        finally:
            if should_close:
                await client.aclose()

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise RemoteStoreError for any non-2xx response."""
        if response.is_success:
            return
        message: Any = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("detail") or body.get("error") or message
        raise RemoteStoreError(response.status_code, str(message), self.provider_name)

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(
                response.status_code, f"Invalid JSON in response: {e}", self.provider_name
            ) from e

    async def list_records(self) -> list[RecordData]:
        response = await self._request("GET", self._url())
        self._raise_for_status(response)
        data = self._json(response)
        if not isinstance(data, list):
            raise RemoteStoreError(response.status_code, "Expected a JSON list", self.provider_name)
        return data

    async def get_record(self, record_id: str) -> RecordData | None:
        response = await self._request("GET", self._url(record_id))
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return self._json(response)

    async def create_record(self, initial: RecordData) -> RecordData:
        response = await self._request("POST", self._url(), json=initial)
        self._raise_for_status(response)
        return self._json(response)

    async def patch_record(self, record_id: str, updates: RecordData) -> RecordData:
        response = await self._request("PATCH", self._url(record_id), json=updates)
        if response.status_code == 404:
            raise EntityNotFoundError("Fldr", record_id)
        self._raise_for_status(response)
        return self._json(response)

    async def delete_record(self, record_id: str) -> bool:
        response = await self._request("DELETE", self._url(record_id))
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        return True

    async def ping(self) -> bool:
        try:
            response = await self._request("GET", f"{self._base_url}/health")
        except RemoteStoreError as e:
            logger.debug("Health check failed: %s", e)
            return False
        return response.status_code == 200
