from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from mention_contract.core.config import Settings
from mention_contract.core.errors import AuthorityMalformedResponse, AuthorityUnavailable
from mention_contract.services.authority_client import AuthorityClient, make_search_metadatas_body

FILTERS = {"data_key": "subject-1", "meta_contract_id": "0x01"}


def _envelope(metadatas: list[dict[str, Any]], *, success: bool = True, err_msg: str = "") -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": "1",
        "result": {"success": success, "err_msg": err_msg, "metadatas": metadatas},
    }


def _lookup(handler, filters: dict[str, str] = FILTERS) -> str | None:
    async def run() -> str | None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            authority = AuthorityClient(Settings(authority_url="http://registry.local/rpc"), client=client)
            return await authority.lookup_owner(filters)

    return asyncio.run(run())


def test_make_search_metadatas_body_builds_jsonrpc_filter() -> None:
    body = json.loads(make_search_metadatas_body(FILTERS))
    assert body == {
        "jsonrpc": "2.0",
        "method": "search_metadatas",
        "params": {
            "query": [
                {"column": "data_key", "op": "=", "query": "subject-1"},
                {"column": "meta_contract_id", "op": "=", "query": "0x01"},
            ],
            "ordering": [],
            "from": 0,
            "to": 0,
        },
        "id": "1",
    }


def test_lookup_owner_returns_first_match() -> None:
    captured: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["url"] = str(request.url)
        captured["content_type"] = request.headers.get("content-type")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            status_code=200,
            json=_envelope(
                [
                    {"public_key": "0xbob", "data_key": "subject-1"},
                    {"public_key": "0xcarol", "data_key": "subject-1"},
                ]
            ),
            request=request,
        )

    assert _lookup(handler) == "0xbob"
    assert captured["method"] == "POST"
    assert captured["url"] == "http://registry.local/rpc"
    assert captured["content_type"] == "application/json"
    assert captured["body"]["method"] == "search_metadatas"


def test_lookup_owner_returns_none_without_matches() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json=_envelope([]), request=request)

    assert _lookup(handler) is None


def test_lookup_owner_wraps_transport_failures() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(AuthorityUnavailable):
        _lookup(handler)


def test_lookup_owner_treats_error_status_as_unavailable() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=503, request=request)

    with pytest.raises(AuthorityUnavailable):
        _lookup(handler)


def test_lookup_owner_surfaces_registry_errors() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json=_envelope([], success=False, err_msg="index offline"), request=request)

    with pytest.raises(AuthorityUnavailable, match="index offline"):
        _lookup(handler)


@pytest.mark.parametrize("body", [b"<html>bad gateway</html>", b'{"jsonrpc": "2.0"}', b'{"result": []}'])
def test_lookup_owner_rejects_unexpected_envelope(body: bytes) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, content=body, request=request)

    with pytest.raises(AuthorityMalformedResponse):
        _lookup(handler)


@pytest.mark.parametrize("url", ["http://registry.local:abc/rpc", "http://registry.local:99999999/rpc"])
def test_lookup_owner_wraps_invalid_endpoint(url: str) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json=_envelope([]), request=request)

    async def run() -> str | None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            authority = AuthorityClient(Settings(authority_url=url), client=client)
            return await authority.lookup_owner(FILTERS)

    with pytest.raises(AuthorityUnavailable):
        asyncio.run(run())
