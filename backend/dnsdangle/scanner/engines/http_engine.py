# dnsdangle/scanner/engines/http_engine.py
"""
HTTP availability check engine.

Fetches the hostname and records what (if anything) answered. Takeover
fingerprints live in the body of a provider's default "not found" page,
which is usually served on both schemes, so HTTPS is tried first and plain
HTTP second.

Attempt rules:
    - Each attempt is bounded by one overall timeout (default 15s). A timeout
      is terminal: status 0, error_kind "Timeout", no further attempts.
    - Any other failure on HTTPS is silent; the check moves on to HTTP.
    - Any other failure on HTTP is terminal: status 0, "Connection Failed".
    - Redirects are followed; status, body and Server header come from the
      last hop. The body is streamed and cut at 50,000 bytes.

Output (HttpOutcome):
    HttpOutcome(http_status_code=404, response_body="...No such app...",
                 error_kind="", server_header="cowboy")

Engine config options:
    timeout:        float — overall bound per attempt in seconds (default: 15)
    max_body_bytes: int   — body bytes kept (default: 50000)

Requires: httpx (async HTTP client)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from dnsdangle.scanner.base import (
    ERROR_CONNECTION_FAILED,
    ERROR_TIMEOUT,
    BaseEngine,
    HttpOutcome,
    ScanContext,
)

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 15
MAX_BODY_BYTES = 50_000

SCHEMES = ("https", "http")

# Browser-like headers so trivial bot-blocking doesn't skew the results
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,*/*",
}


def build_client(
    timeout: float = HTTP_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Shared client for one scan run."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        verify=False,
        headers=DEFAULT_HEADERS,
        transport=transport,
    )


class HTTPEngine(BaseEngine[HttpOutcome]):
    """
    Tries https:// then http:// for the hostname.

    Args:
        client: httpx.AsyncClient owned by the caller (the orchestrator keeps
                one per scan run). When omitted, a client is opened per check.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client

    @property
    def name(self) -> str:
        return "http"

    async def execute(self, ctx: ScanContext, config: Dict[str, Any]) -> HttpOutcome:
        timeout = config.get("timeout", HTTP_TIMEOUT)
        max_body = config.get("max_body_bytes", MAX_BODY_BYTES)

        if self.client is not None:
            return await self._check(self.client, ctx.target, timeout, max_body)

        async with build_client(timeout) as client:
            return await self._check(client, ctx.target, timeout, max_body)

    def degraded(self, ctx: ScanContext, error: Exception) -> HttpOutcome:
        return HttpOutcome(error_kind=ERROR_CONNECTION_FAILED)

    async def _check(
        self,
        client: httpx.AsyncClient,
        host: str,
        timeout: float,
        max_body: int,
    ) -> HttpOutcome:
        for scheme in SCHEMES:
            url = f"{scheme}://{host}"
            try:
                return await asyncio.wait_for(
                    self._fetch(client, url, max_body),
                    timeout=timeout,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException):
                logger.debug(f"HTTP check timed out for {url}")
                return HttpOutcome(error_kind=ERROR_TIMEOUT)
            except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError) as e:
                logger.debug(f"HTTP check failed for {url}: {type(e).__name__}: {e}")
                continue

        return HttpOutcome(error_kind=ERROR_CONNECTION_FAILED)

    async def _fetch(self, client: httpx.AsyncClient, url: str, max_body: int) -> HttpOutcome:
        async with client.stream("GET", url) as response:
            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) >= max_body:
                    break

            encoding = response.encoding or "utf-8"
            try:
                text = bytes(body[:max_body]).decode(encoding, errors="replace")
            except LookupError:
                text = bytes(body[:max_body]).decode("utf-8", errors="replace")

            return HttpOutcome(
                http_status_code=response.status_code,
                response_body=text,
                error_kind="",
                server_header=response.headers.get("server", ""),
            )
