# tests/test_routes.py
from __future__ import annotations

import io
import json

import dns.asyncresolver
import dns.resolver
import pytest

from conftest import FakeResolver, mock_transport, resolver_for
from dnsdangle import create_app
from dnsdangle.scan import routes as scan_routes
from dnsdangle.scanner import ScanOrchestrator

FAST = {"dns": {"timeout": 0.5, "target_check_timeout": 0.2}, "http": {"timeout": 1}}


@pytest.fixture
def offline_scans(monkeypatch):
    """Route scans through a fake resolver and a mock HTTP transport."""
    def install(resolver, pages=None):
        def build(app):
            return ScanOrchestrator(
                catalog_loader=scan_routes.catalog_loader_for(app),
                engine_config=FAST,
                max_concurrency=app.config["SCAN_MAX_CONCURRENCY"],
                resolver=resolver,
                transport=mock_transport(pages or {}),
            )
        monkeypatch.setattr(scan_routes, "build_orchestrator", build)
    return install


def ndjson(response):
    return [json.loads(line) for line in response.get_data(as_text=True).splitlines() if line]


# ---------------------------------------------------------------------------
# /scan
# ---------------------------------------------------------------------------

def test_scan_json_list_streams_ndjson(client, offline_scans):
    offline_scans(
        resolver_for({"shop.example.com": ["CNAME gone.herokuapp.com"]}),
        {"shop.example.com": (404, "No such app")},
    )

    resp = client.post("/scan", json={"subdomains": ["https://shop.example.com/", "missing.example.com"]})

    assert resp.status_code == 200
    assert resp.mimetype == "application/x-ndjson"
    events = ndjson(resp)
    assert events[0] == {"type": "init", "total": 2}
    results = {e["index"]: e["data"] for e in events[1:]}
    assert results[0]["subdomain"] == "shop.example.com"
    assert results[0]["riskLevel"] == "CRITICAL"
    assert results[1]["riskLevel"] == "LOW"
    assert list(results[0].keys()) == [
        "subdomain", "cname", "dnsStatus", "httpStatus", "provider", "signature",
        "dnsLookupResult", "securityIssue", "riskLevel", "riskLabel", "serverHeader", "scannedAt",
    ]


def test_scan_json_text_uses_line_parsing(client, offline_scans):
    offline_scans(FakeResolver())

    resp = client.post("/scan", json={"subdomains": "subdomain\na.example.com\nA.example.com"})

    assert ndjson(resp)[0] == {"type": "init", "total": 1}


def test_scan_file_upload_and_pasted_text_are_merged(client, offline_scans):
    offline_scans(FakeResolver())
    upload = io.BytesIO(b"subdomain,owner\napi.example.com,team\nwww.example.com,team\n")

    resp = client.post(
        "/scan",
        data={"file": (upload, "subs.csv"), "subdomains": "www.example.com\nblog.example.com"},
        content_type="multipart/form-data",
    )

    events = ndjson(resp)
    assert events[0] == {"type": "init", "total": 3}
    assert sorted(e["data"]["subdomain"] for e in events[1:]) == [
        "api.example.com", "blog.example.com", "www.example.com",
    ]


def test_scan_rejects_empty_batch(client, offline_scans):
    offline_scans(FakeResolver())

    resp = client.post("/scan", json={"subdomains": ["localhost", ""]})

    assert resp.status_code == 400
    assert "No valid subdomains" in resp.get_json()["error"]


def test_scan_rejects_101_hostnames_before_scanning(client, offline_scans):
    resolver = FakeResolver()
    offline_scans(resolver)

    resp = client.post("/scan", json={"subdomains": [f"h{i}.example.com" for i in range(101)]})

    assert resp.status_code == 400
    assert "maximum is 100" in resp.get_json()["error"]
    assert resolver.calls == []


def test_scan_rejects_wrong_subdomains_type(client):
    resp = client.post("/scan", json={"subdomains": 42})

    assert resp.status_code == 400


def test_scan_rejects_binary_upload(client):
    resp = client.post(
        "/scan",
        data={"file": (io.BytesIO(b"\xff\xfe\x00bad"), "subs.bin")},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 400
    assert "UTF-8" in resp.get_json()["error"]


def test_scan_uses_catalog_replaced_through_config(client, offline_scans):
    offline_scans(
        resolver_for({"blog.example.com": ["CNAME blog.pages.example.net"]}),
        {"blog.example.com": (404, "Nothing to see")},
    )
    client.put("/config?type=fingerprints", json={"data": {"pages.example.net": ["Nothing to see"]}})
    client.put("/config?type=providers", json={"data": {"pages.example.net": "Example Pages"}})

    events = ndjson(client.post("/scan", json={"subdomains": ["blog.example.com"]}))

    data = events[1]["data"]
    assert data["provider"] == "Example Pages"
    assert data["signature"] == "Example Pages - Nothing to see"
    assert data["riskLevel"] == "CRITICAL"


# ---------------------------------------------------------------------------
# /config
# ---------------------------------------------------------------------------

def test_get_config_preserves_catalog_order(client):
    resp = client.get("/config?type=fingerprints")

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert list(data)[:2] == ["s3.amazonaws.com", "cloudfront.net"]
    assert data["herokuapp.com"][0] == "No such app"


def test_get_config_rejects_unknown_type(client):
    assert client.get("/config?type=secrets").status_code == 400
    assert client.get("/config").status_code == 400


def test_put_config_replaces_wholesale(client):
    resp = client.put("/config?type=providers", json={"data": {"zeta.example": "Zeta", "alpha.example": "Alpha"}})

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "entries": 2}
    assert client.get("/config?type=providers").get_json()["data"] == {"zeta.example": "Zeta", "alpha.example": "Alpha"}
    assert list(client.get("/config?type=providers").get_json()["data"]) == ["zeta.example", "alpha.example"]


def test_put_config_with_wrong_shape_keeps_old_catalog(client):
    before = client.get("/config?type=fingerprints").get_json()["data"]

    resp = client.put("/config?type=fingerprints", json={"data": {"herokuapp.com": "No such app"}})

    assert resp.status_code == 400
    assert client.get("/config?type=fingerprints").get_json()["data"] == before


def test_put_config_requires_data_field(client):
    resp = client.put("/config?type=providers", json={"providers": {}})

    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------

def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "up and running"}


def test_unknown_route_is_json_404(client):
    resp = client.get("/nope")

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Not found"


# ---------------------------------------------------------------------------
# Orchestrator wiring
# ---------------------------------------------------------------------------

def test_build_orchestrator_maps_scan_settings(app):
    app.config.update(
        SCAN_MAX_CONCURRENCY=3,
        SCAN_DNS_TIMEOUT=2.5,
        SCAN_DNS_TARGET_TIMEOUT=1.5,
        SCAN_HTTP_TIMEOUT=7.0,
    )

    orch = scan_routes.build_orchestrator(app)

    assert orch.max_concurrency == 3
    assert orch.engine_config["dns"] == {"timeout": 2.5, "target_check_timeout": 1.5}
    assert orch.engine_config["http"] == {"timeout": 7.0, "max_body_bytes": 50_000}


def test_scan_settings_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("SCAN_MAX_CONCURRENCY", "6")
    monkeypatch.setenv("SCAN_DNS_TIMEOUT", "3")
    monkeypatch.setenv("SCAN_DNS_TARGET_TIMEOUT", "2")
    monkeypatch.setenv("SCAN_HTTP_TIMEOUT", "9")
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})

    orch = scan_routes.build_orchestrator(app)

    assert orch.max_concurrency == 6
    assert orch.engine_config["dns"] == {"timeout": 3.0, "target_check_timeout": 2.0}
    assert orch.engine_config["http"]["timeout"] == 9.0


def test_scan_without_resolver_configuration_streams_dns_errors(client, monkeypatch):
    def unconfigured(*args, **kwargs):
        raise dns.resolver.NoResolverConfiguration("no nameservers")

    monkeypatch.setattr(dns.asyncresolver, "Resolver", unconfigured)
    build = scan_routes.build_orchestrator

    def offline_build(app):
        orch = build(app)
        orch.transport = mock_transport({})
        return orch

    monkeypatch.setattr(scan_routes, "build_orchestrator", offline_build)

    resp = client.post("/scan", json={"subdomains": ["a.example.com"]})

    assert resp.status_code == 200
    events = ndjson(resp)
    assert events[0] == {"type": "init", "total": 1}
    assert events[1]["type"] == "result"
    assert events[1]["data"]["dnsStatus"] == "NXDOMAIN"
    assert events[1]["data"]["dnsLookupResult"].startswith("DNS Error: ")
