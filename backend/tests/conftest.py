# tests/conftest.py
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional, Tuple

import dns.resolver
import dns.rrset
import httpx
import pytest

from dnsdangle import create_app
from dnsdangle.extensions import db


# ---------------------------------------------------------------------------
# DNS
# ---------------------------------------------------------------------------

def cname_rrset(name: str, target: str):
    return dns.rrset.from_text(f"{name}.", 300, "IN", "CNAME", f"{target}.")


def a_rrset(name: str, *ips: str):
    return dns.rrset.from_text(f"{name}.", 300, "IN", "A", *ips)


class FakeResolver:
    """
    Stands in for dns.asyncresolver.Resolver.

    answers maps (name, rdtype) to one of:
        - a list of rrsets               → NOERROR with that answer section
        - an exception instance          → raised from resolve()
        - the string "hang"              → never returns (exercises timeouts)
    Any (name, rdtype) not listed raises NXDOMAIN.
    """

    def __init__(self, answers: Optional[Dict[Tuple[str, str], object]] = None):
        self.answers = dict(answers or {})
        self.calls: List[Tuple[str, str]] = []

    async def resolve(self, name, rdtype, raise_on_no_answer=True, lifetime=None):
        self.calls.append((name, rdtype))
        entry = self.answers.get((name, rdtype))
        if entry is None:
            raise dns.resolver.NXDOMAIN()
        if entry == "hang":
            await asyncio.sleep(3600)
        if isinstance(entry, BaseException):
            raise entry
        return SimpleNamespace(response=SimpleNamespace(answer=list(entry)))


def resolver_for(records: Dict[str, Iterable[str]]) -> FakeResolver:
    """
    Shorthand: {"a.example.com": ["CNAME x.herokuapp.com"], "x.herokuapp.com": ["A 1.2.3.4"]}
    """
    answers: Dict[Tuple[str, str], object] = {}
    for name, entries in records.items():
        for entry in entries:
            rdtype, value = entry.split(" ", 1)
            if rdtype == "CNAME":
                answers[(name, "CNAME")] = [cname_rrset(name, value)]
            else:
                answers[(name, "A")] = [a_rrset(name, *value.split(","))]
    return FakeResolver(answers)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def mock_transport(pages: Dict[str, Tuple[int, str]], server: str = "") -> httpx.MockTransport:
    """
    pages maps a host to (status, body). Unknown hosts fail to connect on
    both schemes.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        page = pages.get(request.url.host)
        if page is None:
            raise httpx.ConnectError("connection refused", request=request)
        status, body = page
        headers = {"server": server} if server else {}
        return httpx.Response(status, text=body, headers=headers)

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Flask
# ---------------------------------------------------------------------------

@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SCAN_MAX_CONCURRENCY": 4,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
