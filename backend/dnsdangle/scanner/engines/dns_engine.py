# dnsdangle/scanner/engines/dns_engine.py
"""
Name resolution engine.

Works out what a hostname points at and whether that pointer is dangling.

Resolution steps (first that applies wins):
    1. CNAME query. On a CNAME answer, take the first target and run an
       advisory A query against it with a shorter timeout. A target that
       does not resolve is flagged in the trail, but the status stays CNAME
       because the record itself exists.
    2. A query. NXDOMAIN → NXDOMAIN. A records → A with the first IP.
    3. A query answered only with a CNAME (some resolvers flatten the chain
       this way) → CNAME, without the advisory check.
    4. NOERROR with an empty answer → NXDOMAIN with a "No DNS Answer" trail,
       kept distinct from a true NXDOMAIN for diagnostics.
    5. Anything else (timeouts, SERVFAIL, malformed answers) → NXDOMAIN with
       "DNS Error: <message>" in the trail.

Output (ResolutionOutcome):
    ("CNAME", "acme.herokuapp.com", "CNAME -> acme.herokuapp.com [CNAME target NXDOMAIN]")
    ("A", "93.184.216.34", "A -> 93.184.216.34, 93.184.216.35")
    ("NXDOMAIN", "", "NXDOMAIN")

Engine config options:
    timeout:              float — primary query bound in seconds (default: 8)
    target_check_timeout: float — advisory CNAME-target bound (default: 5)

Requires: dnspython (dns.asyncresolver)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import dns.asyncresolver
import dns.exception
import dns.rdatatype
import dns.resolver

from dnsdangle.scanner.base import (
    DNS_A,
    DNS_CNAME,
    DNS_NXDOMAIN,
    BaseEngine,
    ResolutionOutcome,
    ScanContext,
)

logger = logging.getLogger(__name__)

PRIMARY_TIMEOUT = 8
TARGET_CHECK_TIMEOUT = 5

TARGET_NXDOMAIN_MARKER = " [CNAME target NXDOMAIN]"
EMPTY_TARGET_TRAIL = "DNS Error: empty CNAME target"


@dataclass
class DNSLookup:
    """One query's answer section, reduced to (rdtype, text) pairs."""
    status: str                                   # NOERROR or NXDOMAIN
    records: List[Tuple[int, str]] = field(default_factory=list)

    def first(self, rdtype: int) -> Optional[str]:
        for rtype, value in self.records:
            if rtype == rdtype:
                return value
        return None

    def all(self, rdtype: int) -> List[str]:
        return [value for rtype, value in self.records if rtype == rdtype]


def _strip_root(name: str) -> str:
    return name.strip().rstrip(".")


def _describe(error: BaseException) -> str:
    message = str(error).strip()
    if isinstance(error, asyncio.TimeoutError) and not message:
        return "Timeout"
    return message or type(error).__name__


class DNSEngine(BaseEngine[ResolutionOutcome]):
    """
    Resolves a hostname to its CNAME target or A records.

    Never raises: every failure becomes an NXDOMAIN outcome whose trail text
    explains what happened.

    Args:
        resolver: anything with dnspython's async `resolve()` signature.
                  Defaults to a dns.asyncresolver.Resolver built on first query,
                  so a host without resolver configuration degrades per
                  hostname instead of failing the whole batch.
    """

    def __init__(self, resolver: Any = None):
        self.resolver = resolver

    @property
    def name(self) -> str:
        return "dns"

    async def execute(self, ctx: ScanContext, config: Dict[str, Any]) -> ResolutionOutcome:
        hostname = ctx.target.strip()
        timeout = config.get("timeout", PRIMARY_TIMEOUT)
        check_timeout = config.get("target_check_timeout", TARGET_CHECK_TIMEOUT)

        try:
            return await self._resolve(hostname, timeout, check_timeout)
        except (dns.exception.DNSException, asyncio.TimeoutError, OSError, ValueError) as e:
            logger.debug(f"DNS lookup failed for {hostname}: {_describe(e)}")
            return ResolutionOutcome.nxdomain(f"DNS Error: {_describe(e)}")

    def degraded(self, ctx: ScanContext, error: Exception) -> ResolutionOutcome:
        return ResolutionOutcome.nxdomain(f"DNS Error: {_describe(error)}")

    # -------------------------------------------------------------------
    # Resolution steps
    # -------------------------------------------------------------------

    async def _resolve(
        self,
        hostname: str,
        timeout: float,
        check_timeout: float,
    ) -> ResolutionOutcome:
        # --- 1. CNAME ---
        cname_lookup = await self._query(hostname, "CNAME", timeout)
        cname = cname_lookup.first(dns.rdatatype.CNAME)
        if cname:
            target = _strip_root(cname)
            if not target:
                return ResolutionOutcome.nxdomain(EMPTY_TARGET_TRAIL)
            note = "" if await self._target_resolves(target, check_timeout) else TARGET_NXDOMAIN_MARKER
            return ResolutionOutcome(DNS_CNAME, target, f"CNAME -> {target}{note}")

        # --- 2. A ---
        a_lookup = await self._query(hostname, "A", timeout)
        if a_lookup.status == DNS_NXDOMAIN:
            return ResolutionOutcome.nxdomain("NXDOMAIN")

        ips = a_lookup.all(dns.rdatatype.A)
        if ips:
            return ResolutionOutcome(DNS_A, ips[0], f"A -> {', '.join(ips)}")

        # --- 3. CNAME inside the A answer ---
        cname_in_a = a_lookup.first(dns.rdatatype.CNAME)
        if cname_in_a:
            target = _strip_root(cname_in_a)
            if not target:
                return ResolutionOutcome.nxdomain(EMPTY_TARGET_TRAIL)
            return ResolutionOutcome(DNS_CNAME, target, f"CNAME -> {target}")

        # --- 4. NOERROR, nothing usable ---
        if not a_lookup.records:
            return ResolutionOutcome.nxdomain("No DNS Answer")

        return ResolutionOutcome.nxdomain(f"DNS Status: {a_lookup.status}")

    async def _target_resolves(self, target: str, timeout: float) -> bool:
        """Advisory check: does the CNAME target itself exist?"""
        try:
            lookup = await self._query(target, "A", timeout)
        except (dns.exception.DNSException, asyncio.TimeoutError, OSError, ValueError) as e:
            logger.debug(f"CNAME target check failed for {target}: {_describe(e)}")
            return False
        return lookup.status != DNS_NXDOMAIN

    # -------------------------------------------------------------------
    # Single query
    # -------------------------------------------------------------------

    async def _query(self, name: str, rdtype: str, timeout: float) -> DNSLookup:
        """
        Run one query bounded by `timeout`.

        NXDOMAIN and NoAnswer are answers, not errors, and come back as a
        DNSLookup. Everything else propagates to the caller.
        """
        if self.resolver is None:
            self.resolver = dns.asyncresolver.Resolver()

        try:
            answer = await asyncio.wait_for(
                self.resolver.resolve(name, rdtype, raise_on_no_answer=False, lifetime=timeout),
                timeout=timeout,
            )
        except dns.resolver.NXDOMAIN:
            return DNSLookup(status=DNS_NXDOMAIN)
        except dns.resolver.NoAnswer:
            return DNSLookup(status="NOERROR")

        records: List[Tuple[int, str]] = []
        response = getattr(answer, "response", None)
        for rrset in getattr(response, "answer", None) or []:
            for rdata in rrset:
                records.append((int(rrset.rdtype), rdata.to_text()))
        return DNSLookup(status="NOERROR", records=records)
