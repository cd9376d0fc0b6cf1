# dnsdangle/scanner/analyzers/provider_identifier.py
"""
Provider identification.

Maps the effective resolved name (CNAME target, IP, or the hostname itself)
to a third-party service by case-insensitive substring match against the
Provider Catalog keys, in catalog order.
"""

from __future__ import annotations

from dnsdangle.scanner.base import UNKNOWN_PROVIDER, BaseAnalyzer, ScanContext
from dnsdangle.scanner.catalogs import Catalogs


def identify_provider(target: str, catalogs: Catalogs) -> str:
    lower = (target or "").lower()
    for domain, provider in catalogs.providers:
        if domain.lower() in lower:
            return provider
    return UNKNOWN_PROVIDER


class ProviderIdentifier(BaseAnalyzer):

    @property
    def name(self) -> str:
        return "provider"

    def analyze(self, ctx: ScanContext) -> None:
        ctx.provider = identify_provider(ctx.effective_name, ctx.catalogs or Catalogs())

    def fallback(self, ctx: ScanContext) -> None:
        ctx.provider = UNKNOWN_PROVIDER
