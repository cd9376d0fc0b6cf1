# dnsdangle/scan/routes.py
from __future__ import annotations

import logging
from typing import Any, List

from flask import Blueprint, Flask, Response, current_app, jsonify, request, stream_with_context

from dnsdangle.catalog.store import load_catalogs
from dnsdangle.scanner import BatchValidationError, ScanOrchestrator, parse_targets, validate_batch
from dnsdangle.scanner.orchestrator import dedupe_targets, normalize_target

logger = logging.getLogger(__name__)

scan_bp = Blueprint("scan", __name__)


def catalog_loader_for(app: Flask):
    """Snapshot loader usable from the scan's event loop."""
    def load():
        with app.app_context():
            return load_catalogs()
    return load


def build_orchestrator(app: Flask) -> ScanOrchestrator:
    cfg = app.config
    return ScanOrchestrator(
        catalog_loader=catalog_loader_for(app),
        max_concurrency=cfg["SCAN_MAX_CONCURRENCY"],
        engine_config={
            "dns": {
                "timeout": cfg["SCAN_DNS_TIMEOUT"],
                "target_check_timeout": cfg["SCAN_DNS_TARGET_TIMEOUT"],
            },
            "http": {"timeout": cfg["SCAN_HTTP_TIMEOUT"]},
        },
    )


def _targets_from_json(value: Any) -> List[str]:
    if isinstance(value, str):
        return parse_targets(value)
    if isinstance(value, list):
        cleaned = [normalize_target(v) for v in value if isinstance(v, str)]
        return dedupe_targets(v for v in cleaned if v and "." in v)
    raise BatchValidationError('"subdomains" must be a list of hostnames or a newline-separated string.')


def _targets_from_form() -> List[str]:
    found: List[str] = []

    upload = request.files.get("file")
    if upload and upload.filename:
        raw = upload.read()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise BatchValidationError("Uploaded file must be UTF-8 text (one hostname per line, or CSV).")
        found.extend(parse_targets(text))

    pasted = request.form.get("subdomains")
    if pasted:
        found.extend(parse_targets(pasted))

    return dedupe_targets(found)


def read_targets() -> List[str]:
    """Hostnames from a multipart upload / form field, or a JSON body."""
    if request.is_json:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise BatchValidationError('Body must be a JSON object with a "subdomains" field.')
        return _targets_from_json(body.get("subdomains"))
    return _targets_from_form()


@scan_bp.post("/scan")
def scan():
    try:
        targets = validate_batch(read_targets())
    except BatchValidationError as e:
        return jsonify(error=str(e)), 400

    app = current_app._get_current_object()
    orchestrator = build_orchestrator(app)
    logger.info(f"Scan requested for {len(targets)} hostname(s) from {request.remote_addr}")

    return Response(
        stream_with_context(orchestrator.iter_ndjson(targets)),
        mimetype="application/x-ndjson",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
