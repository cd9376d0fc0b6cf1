# dnsdangle/scanner/orchestrator.py
"""
Scan Orchestrator: drives the takeover pipeline over a batch of hostnames.

Per hostname (independently, bounded concurrency):

    1. Build a ScanContext
    2. Run engines   — DNSEngine (resolution), HTTPEngine (availability)
    3. Load the current catalog snapshot
    4. Run analyzers — provider, fingerprint, risk
    5. Emit a result event

Usage from scan/routes.py:
    from dnsdangle.scanner import ScanOrchestrator, parse_targets, validate_batch

    targets = validate_batch(parse_targets(text))      # raises BatchValidationError
    orchestrator = ScanOrchestrator(catalog_loader=load_catalogs)
    for line in orchestrator.iter_ndjson(targets):
        ...

Event stream (one JSON object per line):
    {"type": "init", "total": N}
    {"type": "result", "index": i, "data": {...ScanResult...}}
    {"type": "error", "index": i}

Events arrive in completion order, not submission order; each carries the
hostname's own index. There is no closing event. Closing the stream cancels
every hostname still in flight.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import threading
import time
from typing import Any, AsyncIterator, Callable, Dict, Iterable, Iterator, List, Optional

import httpx

from dnsdangle.scanner.analyzers import ALL_ANALYZERS
from dnsdangle.scanner.base import BaseAnalyzer, ScanContext, ScanResult, now_utc
from dnsdangle.scanner.catalogs import Catalogs, default_catalogs
from dnsdangle.scanner.engines.dns_engine import (
    PRIMARY_TIMEOUT,
    TARGET_CHECK_TIMEOUT,
    DNSEngine,
)
from dnsdangle.scanner.engines.http_engine import (
    HTTP_TIMEOUT,
    MAX_BODY_BYTES,
    HTTPEngine,
    build_client,
)

logger = logging.getLogger(__name__)

MAX_TARGETS = 100
DEFAULT_MAX_CONCURRENCY = 10

_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)
_QUOTES = "\"'"


class BatchValidationError(ValueError):
    """The submitted batch is empty, too large, or unparseable."""


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------

def normalize_target(value: str) -> str:
    """
    Clean one raw entry.

        '"https://foo.example.com/"'  → 'foo.example.com'
    """
    v = (value or "").strip()
    if v[:1] in _QUOTES:
        v = v[1:]
    if v[-1:] in _QUOTES:
        v = v[:-1]
    v = _PROTOCOL_RE.sub("", v.strip())
    if v.endswith("/"):
        v = v[:-1]
    return v.strip()


def dedupe_targets(targets: Iterable[str]) -> List[str]:
    """Case-insensitive dedupe that keeps the first spelling and the order."""
    seen = set()
    unique: List[str] = []
    for t in targets:
        key = t.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(t)
    return unique


def parse_targets(text: str) -> List[str]:
    """
    Parse pasted text or an uploaded line/CSV file into hostnames.

    - one entry per line; for CSV rows only the first column is used
    - the first line is a header (and skipped) when it mentions
      "subdomain" or "domain"
    - quotes, a leading http(s):// and a trailing / are stripped
    - entries without a "." are dropped
    - duplicates are dropped case-insensitively, order preserved
    """
    lines = re.split(r"\r?\n", text or "")
    first = lines[0].lower() if lines else ""
    skip_header = "subdomain" in first or "domain" in first

    found: List[str] = []
    for i, line in enumerate(lines):
        if i == 0 and skip_header:
            continue
        value = normalize_target(line.split(",")[0])
        if value and "." in value:
            found.append(value)

    return dedupe_targets(found)


def validate_batch(targets: Iterable[str], max_targets: int = MAX_TARGETS) -> List[str]:
    """
    Reject empty or oversized batches before any network call is made.
    Returns the deduplicated list.
    """
    unique = dedupe_targets(t for t in targets if t)
    if not unique:
        raise BatchValidationError("No valid subdomains found. Provide one hostname per line.")
    if len(unique) > max_targets:
        raise BatchValidationError(
            f"Too many subdomains: {len(unique)} submitted, maximum is {max_targets}."
        )
    return unique


def is_usable_hostname(hostname: str) -> bool:
    """Can this value be put on the wire as a DNS name / URL host at all?"""
    h = (hostname or "").strip()
    if not h or "." not in h or len(h) > 253:
        return False
    if any(c.isspace() for c in h) or any(c in h for c in "/?#@"):
        return False
    try:
        h.rstrip(".").encode("idna")
    except UnicodeError:
        return False
    return True


# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------

def _get_engine_config(overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Dict[str, Any]]:
    config: Dict[str, Dict[str, Any]] = {
        "dns": {
            "timeout": PRIMARY_TIMEOUT,
            "target_check_timeout": TARGET_CHECK_TIMEOUT,
        },
        "http": {
            "timeout": HTTP_TIMEOUT,
            "max_body_bytes": MAX_BODY_BYTES,
        },
    }
    for engine_name, values in (overrides or {}).items():
        config.setdefault(engine_name, {}).update(values or {})
    return config


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ScanOrchestrator:
    """
    Coordinates the per-hostname pipeline and streams events.

    Args:
        catalog_loader:  returns the current Catalogs snapshot; called once per
                         hostname right before classification. Defaults to the
                         built-in catalogs.
        engine_config:   per-engine overrides, e.g. {"dns": {"timeout": 3}}.
        max_concurrency: hostnames in flight at once.
        resolver:        dnspython-compatible async resolver (tests inject one).
        transport:       httpx transport for the shared client (tests inject one).
    """

    def __init__(
        self,
        catalog_loader: Optional[Callable[[], Catalogs]] = None,
        engine_config: Optional[Dict[str, Dict[str, Any]]] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        resolver: Any = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.catalog_loader = catalog_loader or default_catalogs
        self.engine_config = _get_engine_config(engine_config)
        self.max_concurrency = max(1, int(max_concurrency))
        self.transport = transport
        self.dns_engine = DNSEngine(resolver)
        # Snapshot reads run in worker threads, one at a time
        self._catalog_lock = threading.Lock()

    # -------------------------------------------------------------------
    # Single hostname
    # -------------------------------------------------------------------

    async def scan_target(
        self,
        index: int,
        hostname: str,
        client: Optional[httpx.AsyncClient] = None,
    ) -> ScanResult:
        """
        Run the full pipeline for one hostname.

        Always returns a ScanResult: engine and analyzer failures degrade to
        NXDOMAIN / no-response facts instead of raising.
        """
        ctx = ScanContext(index=index, target=hostname, started_at=now_utc())
        start = time.monotonic()

        ctx.resolution = await self.dns_engine.run(ctx, self.engine_config["dns"])

        if client is None:
            async with self._client() as own_client:
                ctx.http_result = await HTTPEngine(own_client).run(ctx, self.engine_config["http"])
        else:
            ctx.http_result = await HTTPEngine(client).run(ctx, self.engine_config["http"])

        ctx.catalogs = await asyncio.to_thread(self._load_catalogs)

        for analyzer_cls in ALL_ANALYZERS.values():
            analyzer: BaseAnalyzer = analyzer_cls()
            analyzer.run(ctx)

        ctx.finished_at = now_utc()
        logger.debug(
            f"Scanned {hostname} in {round(time.monotonic() - start, 2)}s: "
            f"{ctx.resolution.dns_status} / {ctx.http_result.http_status_code} / "
            f"{ctx.verdict.risk_level if ctx.verdict else '-'}"
        )
        return ScanResult.from_context(ctx)

    def _load_catalogs(self) -> Catalogs:
        try:
            with self._catalog_lock:
                return self.catalog_loader()
        except Exception:
            logger.exception("Failed to load catalogs, using built-in defaults")
            return default_catalogs()

    def _client(self) -> httpx.AsyncClient:
        return build_client(self.engine_config["http"]["timeout"], transport=self.transport)

    # -------------------------------------------------------------------
    # Batch streaming
    # -------------------------------------------------------------------

    async def _scan_event(
        self,
        index: int,
        hostname: str,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
    ) -> Dict[str, Any]:
        if not is_usable_hostname(hostname):
            logger.warning(f"Skipping unusable hostname at index {index}: {hostname!r}")
            return {"type": "error", "index": index}

        async with semaphore:
            try:
                result = await self.scan_target(index, hostname, client)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Pipeline failed for {hostname}")
                return {"type": "error", "index": index}

        return {"type": "result", "index": index, "data": result.to_dict()}

    async def stream(self, targets: Iterable[str]) -> AsyncIterator[Dict[str, Any]]:
        """
        Async generator of scan events for a batch.

        Raises BatchValidationError before the first event (and before any
        network call) if the batch is empty or too large.
        """
        batch = validate_batch(targets)
        total = len(batch)
        started = time.monotonic()
        logger.info(f"Scan started: {total} hostname(s), concurrency {self.max_concurrency}")

        yield {"type": "init", "total": total}

        semaphore = asyncio.Semaphore(self.max_concurrency)
        completed = 0

        async with self._client() as client:
            tasks = [
                asyncio.ensure_future(self._scan_event(i, hostname, client, semaphore))
                for i, hostname in enumerate(batch)
            ]
            try:
                for next_done in asyncio.as_completed(tasks):
                    event = await next_done
                    completed += 1
                    yield event
            finally:
                pending = [t for t in tasks if not t.done()]
                for t in pending:
                    t.cancel()
                if pending:
                    logger.info(f"Scan aborted: cancelling {len(pending)} in-flight hostname(s)")
                    await asyncio.gather(*pending, return_exceptions=True)

        logger.info(
            f"Scan completed: {completed}/{total} hostname(s) in "
            f"{round(time.monotonic() - started, 2)}s"
        )

    def iter_events(self, targets: Iterable[str]) -> Iterator[Dict[str, Any]]:
        """
        Synchronous view of stream() for WSGI responses and the CLI.

        Runs the async pipeline on a private event loop. Closing this
        iterator early (client disconnect) closes the async generator, which
        cancels in-flight hostnames.
        """
        loop = asyncio.new_event_loop()
        agen = self.stream(targets)
        try:
            while True:
                try:
                    event = loop.run_until_complete(agen.__anext__())
                except StopAsyncIteration:
                    break
                yield event
        finally:
            try:
                loop.run_until_complete(agen.aclose())
                loop.run_until_complete(loop.shutdown_asyncgens())
                loop.run_until_complete(loop.shutdown_default_executor())
            finally:
                loop.close()

    def iter_ndjson(self, targets: Iterable[str]) -> Iterator[str]:
        """Newline-delimited JSON lines for the event stream."""
        events = self.iter_events(targets)
        try:
            for event in events:
                yield json.dumps(event) + "\n"
        finally:
            events.close()
