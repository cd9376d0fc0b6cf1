# dnsdangle/scan/__init__.py
"""
Batch takeover scan, streamed over HTTP and from the command line.

Endpoints:
    POST /scan    multipart `file` / `subdomains`, or JSON {"subdomains": [...]}
                  → application/x-ndjson event stream
"""

from dnsdangle.scan.routes import scan_bp

__all__ = ["scan_bp"]
