# tests/test_http_backend.py

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from worktimer.api.http_backend import NO_RESPONSE_MESSAGE, HttpTimeEntryBackend
from worktimer.core.errors import ErrorKind
from worktimer.timing.models import parse_instant

ENTRY = {
    "id": "42",
    "taskId": "7",
    "startTime": "2024-05-01T09:00:00.000Z",
    "endTime": None,
    "isPaused": False,
    "lastResumedAt": "2024-05-01T09:00:00.000Z",
    "accumulatedDuration": "0",
    "duration": None,
    "notes": None,
}


def _backend(handler: Callable[[httpx.Request], httpx.Response]) -> HttpTimeEntryBackend:
    client = httpx.AsyncClient(base_url="http://test/api", transport=httpx.MockTransport(handler))
    return HttpTimeEntryBackend("http://test/api", client=client)


@pytest.mark.asyncio
async def test_start_posts_task_id_and_decodes_entry() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json=ENTRY)

    backend = _backend(handler)
    result = await backend.start("7")

    assert result.success
    assert result.status == 201
    assert result.data.id == "42"
    assert result.data.start_time == parse_instant("2024-05-01T09:00:00Z")
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/time-entries/start"
    assert json.loads(seen[0].content) == {"taskId": "7"}


@pytest.mark.asyncio
@pytest.mark.parametrize("op", ["pause", "resume", "stop"])
async def test_transition_routes(op: str) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=ENTRY)

    backend = _backend(handler)
    result = await getattr(backend, op)("42")

    assert result.success
    assert seen[0].method == "PUT"
    assert seen[0].url.path == f"/api/time-entries/{op}/42"


@pytest.mark.asyncio
async def test_remove_uses_delete_and_tolerates_empty_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert request.url.path == "/api/time-entries/42"
        return httpx.Response(204)

    result = await _backend(handler).remove("42")
    assert result.success
    assert result.data is None


@pytest.mark.asyncio
async def test_list_active_sends_query_and_decodes_all() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params.get("active") == "true"
        return httpx.Response(200, json=[ENTRY, {**ENTRY, "id": "43", "isPaused": True}])

    result = await _backend(handler).list(active_only=True)
    assert result.success
    assert [e.id for e in result.data] == ["42", "43"]
    assert result.data[1].is_paused


@pytest.mark.asyncio
async def test_list_all_sends_no_query() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "active" not in request.url.params
        return httpx.Response(200, json=[])

    result = await _backend(handler).list()
    assert result.success
    assert result.data == []


@pytest.mark.asyncio
async def test_update_sends_wire_names() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={**ENTRY, "notes": "hello"})

    result = await _backend(handler).update("42", {"notes": "hello", "start_time": 0.0})
    assert result.success
    assert result.data.notes == "hello"
    assert seen == [{"notes": "hello", "startTime": "1970-01-01T00:00:00.000Z"}]


@pytest.mark.asyncio
async def test_update_unknown_field_never_hits_network() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    result = await _backend(handler).update("42", {"task_id": "x"})
    assert result.kind == ErrorKind.VALIDATION_FAILURE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "body", "kind", "message"),
    [
        (400, {"message": "Time entry is already paused"}, ErrorKind.REJECTED_TRANSITION, "Time entry is already paused"),
        (404, {"error": "Time entry not found"}, ErrorKind.REJECTED_TRANSITION, "Time entry not found"),
        (422, {"message": "bad"}, ErrorKind.VALIDATION_FAILURE, "bad"),
        (503, None, ErrorKind.NETWORK_FAILURE, "HTTP error! status: 503"),
    ],
)
async def test_error_statuses(status: int, body, kind: ErrorKind, message: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if body is None:
            return httpx.Response(status, text="upstream down")
        return httpx.Response(status, json=body)

    result = await _backend(handler).pause("42")
    assert not result.success
    assert result.kind == kind
    assert result.message == message
    assert result.status == status


@pytest.mark.asyncio
async def test_transport_error_is_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    result = await _backend(handler).pause("42")
    assert result.kind == ErrorKind.NETWORK_FAILURE
    assert result.message == NO_RESPONSE_MESSAGE


@pytest.mark.asyncio
async def test_timeout_is_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    result = await _backend(handler).stop("42")
    assert result.kind == ErrorKind.NETWORK_FAILURE


@pytest.mark.asyncio
async def test_malformed_entry_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "42"})

    result = await _backend(handler).pause("42")
    assert not result.success
    assert result.kind == ErrorKind.REJECTED_TRANSITION
    assert result.message.startswith("Malformed time entry")


@pytest.mark.asyncio
async def test_supplied_client_is_not_closed() -> None:
    client = httpx.AsyncClient(base_url="http://test/api", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    backend = HttpTimeEntryBackend("http://test/api", client=client)
    await backend.aclose()
    assert not client.is_closed
    await client.aclose()
