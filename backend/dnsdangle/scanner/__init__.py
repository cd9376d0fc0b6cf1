# dnsdangle/scanner/__init__.py
"""
Takeover detection pipeline.

Usage:
    from dnsdangle.scanner import ScanOrchestrator, parse_targets, validate_batch

    targets = validate_batch(parse_targets(text))
    for event in ScanOrchestrator().iter_events(targets):
        ...

Architecture:
    Orchestrator
    ├── Engines (collect raw facts)
    │   ├── DNSEngine    — CNAME / A resolution, dangling-target check
    │   └── HTTPEngine   — https → http check, body + Server header
    │
    └── Analyzers (interpret facts → verdict)
        ├── ProviderIdentifier — which third-party service is pointed at
        ├── FingerprintMatcher — "unclaimed resource" signatures in the body
        └── RiskClassifier     — ordered rules → level, label, issue
"""

from dnsdangle.scanner.orchestrator import (
    MAX_TARGETS,
    BatchValidationError,
    ScanOrchestrator,
    parse_targets,
    validate_batch,
)

__all__ = [
    "ScanOrchestrator", "BatchValidationError", "MAX_TARGETS",
    "parse_targets", "validate_batch",
]
