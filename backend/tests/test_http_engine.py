# tests/test_http_engine.py
from __future__ import annotations

import asyncio

import httpx
import pytest

from dnsdangle.scanner.base import ScanContext
from dnsdangle.scanner.engines.http_engine import HTTPEngine, build_client


async def check_host(handler, host="app.example.com", config=None):
    async with build_client(timeout=5, transport=httpx.MockTransport(handler)) as client:
        ctx = ScanContext(index=0, target=host)
        return await HTTPEngine(client).run(ctx, config or {"timeout": 5})


@pytest.mark.asyncio
async def test_https_answer_is_used():
    seen = []

    def handler(request):
        seen.append(request.url.scheme)
        return httpx.Response(404, text="No such app", headers={"server": "cowboy"})

    outcome = await check_host(handler)

    assert seen == ["https"]
    assert outcome.http_status_code == 404
    assert outcome.response_body == "No such app"
    assert outcome.server_header == "cowboy"
    assert outcome.error_kind == ""


@pytest.mark.asyncio
async def test_falls_back_to_http_when_https_fails():
    def handler(request):
        if request.url.scheme == "https":
            raise httpx.ConnectError("tls handshake failed", request=request)
        return httpx.Response(200, text="hello")

    outcome = await check_host(handler)

    assert outcome.http_status_code == 200
    assert outcome.response_body == "hello"


@pytest.mark.asyncio
async def test_both_schemes_failing_is_connection_failed():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    outcome = await check_host(handler)

    assert outcome.http_status_code == 0
    assert outcome.error_kind == "Connection Failed"
    assert outcome.response_body == ""


@pytest.mark.asyncio
async def test_httpx_timeout_is_terminal():
    seen = []

    def handler(request):
        seen.append(request.url.scheme)
        raise httpx.ReadTimeout("timed out", request=request)

    outcome = await check_host(handler)

    assert seen == ["https"]
    assert outcome.http_status_code == 0
    assert outcome.error_kind == "Timeout"


@pytest.mark.asyncio
async def test_overall_timeout_is_terminal():
    async def handler(request):
        await asyncio.sleep(3600)

    outcome = await check_host(handler, config={"timeout": 0.05})

    assert outcome.http_status_code == 0
    assert outcome.error_kind == "Timeout"


@pytest.mark.asyncio
async def test_redirects_are_followed():
    def handler(request):
        if request.url.path == "/":
            return httpx.Response(301, headers={"location": "/landing"})
        return httpx.Response(200, text="landed", headers={"server": "nginx"})

    outcome = await check_host(handler)

    assert outcome.http_status_code == 200
    assert outcome.response_body == "landed"
    assert outcome.server_header == "nginx"


@pytest.mark.asyncio
async def test_body_is_truncated():
    def handler(request):
        return httpx.Response(200, content=b"a" * 120_000)

    outcome = await check_host(handler, config={"timeout": 5, "max_body_bytes": 50_000})

    assert len(outcome.response_body) == 50_000


@pytest.mark.asyncio
async def test_missing_server_header_is_empty():
    outcome = await check_host(lambda request: httpx.Response(204))

    assert outcome.http_status_code == 204
    assert outcome.server_header == ""
