# dnsdangle/scanner/analyzers/risk_classifier.py
"""
Risk classification.

Turns the collected signals into a RiskVerdict with an ordered rule set.
The FIRST matching rule wins, and the order below is part of the contract:
moving a rule changes outcomes for signal combinations that match several.

     1. name is google.com / www.google.com / maps.google.com  → LOW
     2. unknown provider, name contains google.com             → LOW
     4. CNAME, broken, not third-party                         → MEDIUM
     5. A, broken, not third-party                             → MEDIUM
     6. third-party, broken, fingerprint                       → CRITICAL
     7. third-party, HTTP 200, fingerprint                     → CRITICAL
     8. third-party, broken                                    → HIGH
     9. not third-party, fingerprint, broken                   → HIGH
    10. NXDOMAIN                                               → LOW
    11. CNAME or A, HTTP 200                                   → INFO
    12. anything else                                          → INFO

    (3 defines the terms: third-party = provider is known; broken = HTTP 0 or
     >= 400; fingerprint = a real signature, not one of the sentinels.)

The security-issue tag follows from the level, then from the raw signals.
"""

from __future__ import annotations

import logging

from dnsdangle.scanner.base import (
    DNS_A,
    DNS_CNAME,
    DNS_NXDOMAIN,
    RISK_CRITICAL,
    RISK_HIGH,
    RISK_INFO,
    RISK_LOW,
    RISK_MEDIUM,
    SIGNATURE_NONE,
    SIGNATURE_PROTECTED,
    UNKNOWN_PROVIDER,
    BaseAnalyzer,
    FingerprintMatch,
    HttpOutcome,
    RiskVerdict,
    ScanContext,
)

logger = logging.getLogger(__name__)

GOOGLE_MAIN_HOSTS = frozenset({"google.com", "www.google.com", "maps.google.com"})

NON_FINGERPRINTS = frozenset({"", SIGNATURE_NONE, SIGNATURE_PROTECTED})

LABEL_GOOGLE_MAIN = "Pointed to Google Main (Safe/Not Exploitable)"
LABEL_GOOGLE_GENERIC = "Pointed to Generic Google (Safe)"
LABEL_CNAME_HYGIENE = "DNS Hygiene: Self-Pointing or Misconfigured CNAME (Low Likelihood, Some Potential)"
LABEL_A_HYGIENE = "DNS Hygiene: Misconfigured/Dead A Record (Low Likelihood, Some Potential)"
LABEL_CONFIRMED_TAKEOVER = "Confirmed Subdomain Takeover (All 3 Conditions Met)"
LABEL_TAKEOVER_200 = "Subdomain Takeover (Service Responding 200 with Fingerprint)"
LABEL_DANGLING_THIRD_PARTY = "Dangling Pointer to 3rd Party (No Fingerprint)"
LABEL_SUSPICIOUS_CONTENT = "Suspicious Content (Fingerprint Found but Provider Unknown)"
LABEL_NO_DNS = "No DNS Record - Not Exploitable"
LABEL_ACTIVE = "Active Subdomain - Verify Ownership"
LABEL_ORPHANED = "Orphaned or Misconfigured Subdomain"

ISSUE_TAKEOVER = "Subdomain Takeover"
ISSUE_DANGLING = "Dangling DNS Record"
ISSUE_HYGIENE = "DNS Hygiene Misconfiguration"
ISSUE_ACTIVE = "None - Active Service"
ISSUE_NXDOMAIN = "None - NXDOMAIN"
ISSUE_POTENTIAL = "Potential Misconfiguration"


def has_fingerprint(signature: str) -> bool:
    return signature not in NON_FINGERPRINTS


def _risk(dns_status: str, http_status: int, signature: str, provider: str, name: str):
    clean = (name or "").lower().rstrip(".")

    if clean in GOOGLE_MAIN_HOSTS:
        return RISK_LOW, LABEL_GOOGLE_MAIN
    if provider == UNKNOWN_PROVIDER and "google.com" in clean:
        return RISK_LOW, LABEL_GOOGLE_GENERIC

    third_party = provider != UNKNOWN_PROVIDER
    broken = http_status == 0 or http_status >= 400
    fingerprint = has_fingerprint(signature)

    if dns_status == DNS_CNAME and broken and not third_party:
        return RISK_MEDIUM, LABEL_CNAME_HYGIENE
    if dns_status == DNS_A and broken and not third_party:
        return RISK_MEDIUM, LABEL_A_HYGIENE
    if third_party and broken and fingerprint:
        return RISK_CRITICAL, LABEL_CONFIRMED_TAKEOVER
    if third_party and http_status == 200 and fingerprint:
        return RISK_CRITICAL, LABEL_TAKEOVER_200
    if third_party and broken:
        return RISK_HIGH, LABEL_DANGLING_THIRD_PARTY
    if not third_party and fingerprint and broken:
        return RISK_HIGH, LABEL_SUSPICIOUS_CONTENT
    if dns_status == DNS_NXDOMAIN:
        return RISK_LOW, LABEL_NO_DNS
    if dns_status in (DNS_CNAME, DNS_A) and http_status == 200:
        return RISK_INFO, LABEL_ACTIVE

    return RISK_INFO, LABEL_ORPHANED


def security_issue(dns_status: str, http_status: int, signature: str, risk_level: str) -> str:
    if risk_level == RISK_CRITICAL:
        return ISSUE_TAKEOVER
    if risk_level == RISK_HIGH:
        return ISSUE_DANGLING
    if risk_level == RISK_MEDIUM:
        return ISSUE_HYGIENE

    has_pointer = dns_status in (DNS_CNAME, DNS_A)
    if has_pointer and http_status == 200 and not has_fingerprint(signature):
        return ISSUE_ACTIVE
    if dns_status == DNS_NXDOMAIN:
        return ISSUE_NXDOMAIN
    return ISSUE_POTENTIAL


def classify_risk(
    dns_status: str,
    http_status_code: int,
    fingerprint: FingerprintMatch,
    provider: str,
    effective_name: str,
) -> RiskVerdict:
    """Pure and deterministic: same signals, same verdict."""
    signature = fingerprint.matched_signature if fingerprint else ""
    level, label = _risk(dns_status, http_status_code, signature, provider, effective_name)
    return RiskVerdict(
        risk_level=level,
        risk_label=label,
        security_issue=security_issue(dns_status, http_status_code, signature, level),
    )


def synthesize_signature(provider: str, fingerprint: FingerprintMatch, http_result: HttpOutcome) -> str:
    """One-line summary: '<provider> - <fingerprint | error | HTTP code | No Response>'."""
    if fingerprint.is_vulnerable and fingerprint.matched_signature:
        return f"{provider} - {fingerprint.matched_signature}"
    if http_result.error_kind and http_result.http_status_code == 0:
        return f"{provider} - {http_result.error_kind}"
    if http_result.http_status_code > 0:
        return f"{provider} - HTTP {http_result.http_status_code}"
    return f"{provider} - No Response"


class RiskClassifier(BaseAnalyzer):
    """Must run after ProviderIdentifier and FingerprintMatcher."""

    @property
    def name(self) -> str:
        return "risk"

    def analyze(self, ctx: ScanContext) -> None:
        http_result = ctx.http_result or HttpOutcome()
        fingerprint = ctx.fingerprint or FingerprintMatch(False, SIGNATURE_NONE)
        dns_status = ctx.resolution.dns_status if ctx.resolution else DNS_NXDOMAIN

        ctx.verdict = classify_risk(
            dns_status,
            http_result.http_status_code,
            fingerprint,
            ctx.provider,
            ctx.effective_name,
        )
        ctx.signature = synthesize_signature(ctx.provider, fingerprint, http_result)

        if ctx.verdict.risk_level in (RISK_CRITICAL, RISK_HIGH):
            logger.info(
                f"{ctx.target}: {ctx.verdict.risk_level}: {ctx.verdict.risk_label} "
                f"({ctx.signature})"
            )

    def fallback(self, ctx: ScanContext) -> None:
        ctx.verdict = RiskVerdict(RISK_INFO, LABEL_ORPHANED, ISSUE_POTENTIAL)
        ctx.signature = f"{ctx.provider} - No Response"
