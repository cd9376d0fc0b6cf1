# dnsdangle/scanner/analyzers/__init__.py
"""
Analyzers.
Each analyzer reads the facts on a ScanContext and writes its interpretation
back onto it. Analyzers do NOT touch the network.
"""
from dnsdangle.scanner.analyzers.provider_identifier import ProviderIdentifier, identify_provider
from dnsdangle.scanner.analyzers.fingerprint_matcher import FingerprintMatcher, match_fingerprint
from dnsdangle.scanner.analyzers.risk_classifier import (
    RiskClassifier,
    classify_risk,
    synthesize_signature,
)

# ORDER MATTERS: the risk classifier reads what the other two wrote.
ALL_ANALYZERS = {
    "provider": ProviderIdentifier,
    "fingerprint": FingerprintMatcher,
    "risk": RiskClassifier,
}

__all__ = [
    "ProviderIdentifier", "FingerprintMatcher", "RiskClassifier",
    "identify_provider", "match_fingerprint", "classify_risk",
    "synthesize_signature", "ALL_ANALYZERS",
]
