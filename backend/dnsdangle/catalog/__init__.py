# dnsdangle/catalog/__init__.py
"""
Reference catalogs (fingerprints, providers): storage and the /config API.

Endpoints:
    GET /config?type=fingerprints|providers
    PUT /config?type=fingerprints|providers
"""

from dnsdangle.catalog.routes import config_bp

__all__ = ["config_bp"]
