# dnsdangle/scanner/analyzers/fingerprint_matcher.py
"""
Fingerprint matching.

Looks for known "unclaimed resource" signatures in the HTTP response body.

Two passes:
    Scoped   — the target contains a Fingerprint Catalog key: only that
               provider's signatures are searched. A miss means the provider
               is serving real content, so the result is the "protected or
               active" sentinel and other providers are NOT consulted.
    Fallback — the target matched no key at all: every provider's signatures
               are searched in catalog order. A hit is annotated with the
               owning provider's display name, since the provider column
               itself will still read "Unknown Provider".

Signature comparison is case-sensitive; key comparison is not.
"""

from __future__ import annotations

from dnsdangle.scanner.base import (
    SIGNATURE_NONE,
    SIGNATURE_PROTECTED,
    BaseAnalyzer,
    FingerprintMatch,
    ScanContext,
)
from dnsdangle.scanner.catalogs import Catalogs


def match_fingerprint(target: str, body: str, catalogs: Catalogs) -> FingerprintMatch:
    lower = (target or "").lower()
    body = body or ""

    # ── Scoped pass ──
    for domain, signatures in catalogs.fingerprints:
        if domain.lower() in lower:
            for sig in signatures:
                if sig and sig in body:
                    return FingerprintMatch(is_vulnerable=True, matched_signature=sig)
            return FingerprintMatch(is_vulnerable=False, matched_signature=SIGNATURE_PROTECTED)

    # ── Fallback pass ──
    for domain, signatures in catalogs.fingerprints:
        for sig in signatures:
            if sig and sig in body:
                owner = catalogs.provider_name(domain) or domain
                return FingerprintMatch(is_vulnerable=True, matched_signature=f"{sig} (matched {owner})")

    return FingerprintMatch(is_vulnerable=False, matched_signature=SIGNATURE_NONE)


class FingerprintMatcher(BaseAnalyzer):

    @property
    def name(self) -> str:
        return "fingerprint"

    def analyze(self, ctx: ScanContext) -> None:
        body = ctx.http_result.response_body if ctx.http_result else ""
        ctx.fingerprint = match_fingerprint(ctx.effective_name, body, ctx.catalogs or Catalogs())

    def fallback(self, ctx: ScanContext) -> None:
        ctx.fingerprint = FingerprintMatch(is_vulnerable=False, matched_signature=SIGNATURE_NONE)
