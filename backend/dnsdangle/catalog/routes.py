# dnsdangle/catalog/routes.py
"""
Catalog configuration endpoints.

    GET /config?type=fingerprints   → {"data": {"herokuapp.com": ["No such app", ...], ...}}
    GET /config?type=providers      → {"data": {"herokuapp.com": "Heroku", ...}}
    PUT /config?type=...            body {"data": {...}} replaces the catalog wholesale

Key order in "data" is the lookup order and is preserved both ways.
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from dnsdangle.catalog.store import CATALOG_KINDS, read_catalog, replace_catalog
from dnsdangle.scanner.catalogs import CatalogValidationError

logger = logging.getLogger(__name__)

config_bp = Blueprint("config", __name__)


def _requested_kind():
    kind = (request.args.get("type") or "").strip().lower()
    if kind not in CATALOG_KINDS:
        return None
    return kind


@config_bp.get("/config")
def get_config():
    kind = _requested_kind()
    if not kind:
        return jsonify(error=f"type must be one of: {', '.join(CATALOG_KINDS)}"), 400

    return jsonify(data=read_catalog(kind)), 200


@config_bp.put("/config")
def put_config():
    kind = _requested_kind()
    if not kind:
        return jsonify(error=f"type must be one of: {', '.join(CATALOG_KINDS)}"), 400

    body = request.get_json(silent=True)
    if not isinstance(body, dict) or "data" not in body:
        return jsonify(error='body must be a JSON object with a "data" field'), 400

    try:
        entries = replace_catalog(kind, body["data"])
    except CatalogValidationError as e:
        return jsonify(error=str(e)), 400

    return jsonify(success=True, entries=entries), 200
