# dnsdangle/scanner/base.py
"""
Base classes for the takeover detection pipeline.

Architecture:
    ScanContext flows through:  Engines → Analyzers → ScanResult

BaseEngine:   Collects raw facts about one hostname (DNS answers, HTTP response).
              Engines NEVER classify risk. They only gather facts.

BaseAnalyzer: Interprets the facts already on the context (provider, fingerprint,
              risk verdict). Analyzers NEVER touch the network.

This separation means:
  - You can swap the resolver or HTTP client without touching any risk logic
  - You can tune the risk rules without changing how data is collected
  - Each stage can fail independently without losing the hostname's row
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Optional, TypeVar

from dnsdangle.scanner.catalogs import Catalogs

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants shared by every stage
# ---------------------------------------------------------------------------

DNS_CNAME = "CNAME"
DNS_A = "A"
DNS_NXDOMAIN = "NXDOMAIN"

RISK_CRITICAL = "CRITICAL"
RISK_HIGH = "HIGH"
RISK_MEDIUM = "MEDIUM"
RISK_INFO = "INFO"
RISK_LOW = "LOW"

ERROR_TIMEOUT = "Timeout"
ERROR_CONNECTION_FAILED = "Connection Failed"

UNKNOWN_PROVIDER = "Unknown Provider"
SIGNATURE_PROTECTED = "Service protected or active"
SIGNATURE_NONE = "No known signature"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def isoformat_z(ts: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Data structures that flow through the entire pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolutionOutcome:
    """
    What a hostname resolves to.

    Fields:
        dns_status:      CNAME, A or NXDOMAIN. Every failure collapses to NXDOMAIN.
        resolved_target: CNAME target (no trailing dot) or the first A-record IP.
                         Empty for NXDOMAIN.
        trail_text:      Human-readable audit trail, e.g. "CNAME -> x.herokuapp.com
                         [CNAME target NXDOMAIN]" or "DNS Error: ...".
    """
    dns_status: str
    resolved_target: str = ""
    trail_text: str = ""

    @classmethod
    def nxdomain(cls, trail_text: str) -> "ResolutionOutcome":
        return cls(dns_status=DNS_NXDOMAIN, resolved_target="", trail_text=trail_text)


@dataclass(frozen=True)
class HttpOutcome:
    """
    Result of fetching the hostname over HTTP(S).

    http_status_code is 0 when nothing answered; error_kind then says why
    ("Timeout" or "Connection Failed").
    """
    http_status_code: int = 0
    response_body: str = ""
    error_kind: str = ""
    server_header: str = ""


@dataclass(frozen=True)
class FingerprintMatch:
    is_vulnerable: bool
    matched_signature: str


@dataclass(frozen=True)
class RiskVerdict:
    risk_level: str                     # CRITICAL, HIGH, MEDIUM, INFO, LOW
    risk_label: str
    security_issue: str


@dataclass
class ScanContext:
    """
    The data bag for one hostname's pipeline run.

    Created by the orchestrator per hostname. Engines write resolution and
    http_result; analyzers read those and write provider, fingerprint and verdict.
    Nothing is shared between contexts except the read-only catalogs.
    """
    # Target (set once, never changed)
    index: int
    target: str

    # Catalog snapshot, loaded right before classification
    catalogs: Optional[Catalogs] = None

    # Engine outputs
    resolution: Optional[ResolutionOutcome] = None
    http_result: Optional[HttpOutcome] = None

    # Analyzer outputs
    provider: str = UNKNOWN_PROVIDER
    fingerprint: Optional[FingerprintMatch] = None
    verdict: Optional[RiskVerdict] = None
    signature: str = ""

    # Timing
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def effective_name(self) -> str:
        """Resolved target when there is one, otherwise the hostname itself."""
        if self.resolution and self.resolution.resolved_target:
            return self.resolution.resolved_target
        return self.target


@dataclass
class ScanResult:
    """
    The record handed back to the caller for one hostname.

    to_dict() produces the stable camelCase contract consumed by the
    dashboard and export collaborators.
    """
    subdomain: str
    cname: str
    dns_status: str
    http_status: str
    provider: str
    signature: str
    dns_lookup_result: str
    security_issue: str
    risk_level: str
    risk_label: str
    server_header: str
    scanned_at: datetime = field(default_factory=now_utc)

    @classmethod
    def from_context(cls, ctx: ScanContext) -> "ScanResult":
        resolution = ctx.resolution or ResolutionOutcome.nxdomain("")
        http_result = ctx.http_result or HttpOutcome()
        verdict = ctx.verdict
        return cls(
            subdomain=ctx.target,
            cname=ctx.effective_name,
            dns_status=resolution.dns_status,
            http_status=format_http_status(http_result),
            provider=ctx.provider,
            signature=ctx.signature,
            dns_lookup_result=resolution.trail_text,
            security_issue=verdict.security_issue if verdict else "",
            risk_level=verdict.risk_level if verdict else RISK_INFO,
            risk_label=verdict.risk_label if verdict else "",
            server_header=http_result.server_header,
            scanned_at=ctx.finished_at or now_utc(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subdomain": self.subdomain,
            "cname": self.cname,
            "dnsStatus": self.dns_status,
            "httpStatus": self.http_status,
            "provider": self.provider,
            "signature": self.signature,
            "dnsLookupResult": self.dns_lookup_result,
            "securityIssue": self.security_issue,
            "riskLevel": self.risk_level,
            "riskLabel": self.risk_label,
            "serverHeader": self.server_header,
            "scannedAt": isoformat_z(self.scanned_at),
        }


def format_http_status(http_result: HttpOutcome) -> str:
    """'404', or '0 (Timeout)' / '0 (No Response)' when nothing answered."""
    if http_result.http_status_code == 0:
        return f"0 ({http_result.error_kind or 'No Response'})"
    return str(http_result.http_status_code)


# ---------------------------------------------------------------------------
# Abstract base classes
# ---------------------------------------------------------------------------

OutcomeT = TypeVar("OutcomeT")


class BaseEngine(ABC, Generic[OutcomeT]):
    """
    Abstract base for data collection engines.

    To create a new engine:
        1. Subclass BaseEngine
        2. Set the `name` property (e.g., "dns", "http")
        3. Implement `execute(ctx, config)` and `degraded(ctx, error)`

    The base class handles automatically:
        - Timing (logged at debug level)
        - Error catching (exceptions become the engine's degraded outcome)

    Cancellation is never swallowed: asyncio.CancelledError propagates so a
    closed stream stops in-flight network calls.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique engine identifier."""
        ...

    async def run(self, ctx: ScanContext, config: Dict[str, Any] | None = None) -> OutcomeT:
        """
        Execute the engine with automatic timing and error handling.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.

        Always returns an outcome, even on failure.
        """
        config = config or {}
        start = time.monotonic()

        try:
            return await self.execute(ctx, config)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Engine '{self.name}' failed for {ctx.target}")
            return self.degraded(ctx, e)
        finally:
            logger.debug(
                f"Engine '{self.name}' finished for {ctx.target} "
                f"in {round(time.monotonic() - start, 2)}s"
            )

    @abstractmethod
    async def execute(self, ctx: ScanContext, config: Dict[str, Any]) -> OutcomeT:
        """
        Perform the actual data collection. Override this in subclasses.

        Args:
            ctx:    ScanContext with the hostname in ctx.target.
            config: Engine-specific settings, e.g. {"timeout": 8}.
        """
        ...

    @abstractmethod
    def degraded(self, ctx: ScanContext, error: Exception) -> OutcomeT:
        """Best-effort outcome used when execute() raised unexpectedly."""
        ...


class BaseAnalyzer(ABC):
    """
    Abstract base for analyzers.

    To create a new analyzer:
        1. Subclass BaseAnalyzer
        2. Set the `name` property
        3. Implement `analyze(ctx)` (writes its result onto the context)
           and `fallback(ctx)` (writes a neutral result)

    Exceptions inside analyze() are logged and replaced by fallback(), so a
    bug in one rule never drops the hostname's row.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    def run(self, ctx: ScanContext) -> None:
        """DO NOT OVERRIDE THIS METHOD. Override `analyze()` instead."""
        try:
            self.analyze(ctx)
        except Exception:
            logger.exception(f"Analyzer '{self.name}' failed for {ctx.target}")
            self.fallback(ctx)

    @abstractmethod
    def analyze(self, ctx: ScanContext) -> None:
        ...

    @abstractmethod
    def fallback(self, ctx: ScanContext) -> None:
        ...
