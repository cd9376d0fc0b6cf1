# dnsdangle/scanner/engines/__init__.py
"""
Data collection engines.
Each engine collects raw facts about one hostname.
Engines do NOT classify risk. They only gather facts.
"""
from dnsdangle.scanner.engines.dns_engine import DNSEngine
from dnsdangle.scanner.engines.http_engine import HTTPEngine

__all__ = ["DNSEngine", "HTTPEngine"]
