# src/worktimer/api/http_backend.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import ApiResult, ErrorKind
from ..timing.models import TimeEntry, changes_to_wire

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "No response received from server"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if msg:
            return str(msg)
    return f"HTTP error! status: {response.status_code}"


def _kind_for_status(status: int) -> ErrorKind:
    if status >= 500:
        return ErrorKind.NETWORK_FAILURE
    if status == 422:
        return ErrorKind.VALIDATION_FAILURE
    return ErrorKind.REJECTED_TRANSITION


class HttpTimeEntryBackend:
    """
    REST client for the time-entries service.

    Routes (relative to base_url):
      POST   /time-entries/start          {"taskId": ...}
      PUT    /time-entries/pause/{id}
      PUT    /time-entries/resume/{id}
      PUT    /time-entries/stop/{id}
      DELETE /time-entries/{id}
      GET    /time-entries?active=true
      PUT    /time-entries/{id}           partial entry

    Never raises for HTTP or transport errors; those become ApiResult.fail(...).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- operations ----

    async def start(self, task_id: str) -> ApiResult:
        if not task_id:
            return ApiResult.fail("Task ID is required", ErrorKind.VALIDATION_FAILURE)
        return await self._entry_request("POST", "/time-entries/start", json={"taskId": task_id})

    async def pause(self, entry_id: str) -> ApiResult:
        return await self._entry_request("PUT", f"/time-entries/pause/{entry_id}")

    async def resume(self, entry_id: str) -> ApiResult:
        return await self._entry_request("PUT", f"/time-entries/resume/{entry_id}")

    async def stop(self, entry_id: str) -> ApiResult:
        return await self._entry_request("PUT", f"/time-entries/stop/{entry_id}")

    async def remove(self, entry_id: str) -> ApiResult:
        result = await self._request("DELETE", f"/time-entries/{entry_id}")
        if not result.success:
            return result
        return ApiResult.ok(None, status=result.status)

    async def list(self, *, active_only: bool = False) -> ApiResult:
        params = {"active": "true"} if active_only else None
        result = await self._request("GET", "/time-entries", params=params)
        if not result.success:
            return result
        if not isinstance(result.data, list):
            return ApiResult.fail(
                "Malformed time entry list from server",
                ErrorKind.REJECTED_TRANSITION,
                status=result.status,
            )
        try:
            entries = [TimeEntry.from_wire(item) for item in result.data]
        except ValueError as e:
            logger.warning("Could not decode time entry list: %s", e)
            return ApiResult.fail(f"Malformed time entry: {e}", ErrorKind.REJECTED_TRANSITION, status=result.status)
        return ApiResult.ok(entries, status=result.status)

    async def update(self, entry_id: str, changes: dict[str, Any]) -> ApiResult:
        try:
            body = changes_to_wire(changes)
        except ValueError as e:
            return ApiResult.fail(str(e), ErrorKind.VALIDATION_FAILURE)
        return await self._entry_request("PUT", f"/time-entries/{entry_id}", json=body)

    # ---- transport ----

    async def _entry_request(self, method: str, url: str, **kwargs: Any) -> ApiResult:
        result = await self._request(method, url, **kwargs)
        if not result.success:
            return result
        try:
            entry = TimeEntry.from_wire(result.data)
        except ValueError as e:
            logger.warning("Could not decode time entry from %s %s: %s", method, url, e)
            return ApiResult.fail(f"Malformed time entry: {e}", ErrorKind.REJECTED_TRANSITION, status=result.status)
        return ApiResult.ok(entry, status=result.status)

    async def _request(self, method: str, url: str, **kwargs: Any) -> ApiResult:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            logger.warning("%s %s timed out", method, url)
            return ApiResult.fail(NO_RESPONSE_MESSAGE, ErrorKind.NETWORK_FAILURE)
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return ApiResult.fail(NO_RESPONSE_MESSAGE, ErrorKind.NETWORK_FAILURE)

        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s -> %s %s", method, url, response.status_code, message)
            return ApiResult.fail(message, _kind_for_status(response.status_code), status=response.status_code)

        if not response.content:
            return ApiResult.ok(None, status=response.status_code)
        try:
            data = response.json()
        except ValueError:
            return ApiResult.fail(
                "Malformed response from server", ErrorKind.REJECTED_TRANSITION, status=response.status_code
            )
        return ApiResult.ok(data, status=response.status_code)
