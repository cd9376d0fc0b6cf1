# dnsdangle/models.py
from __future__ import annotations

from datetime import datetime, timezone
from sqlalchemy import UniqueConstraint
from .extensions import db


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CatalogEntry(db.Model):
    """
    One row of a reference catalog.

    kind:       "fingerprints" (value = list of signature strings)
                or "providers" (value = display name string)
    position:   catalog order; lookups scan entries in this order and the
                first match wins, so it must survive a round trip
    key:        domain suffix, e.g. "herokuapp.com"
    """
    __tablename__ = "catalog_entry"

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(20), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    key = db.Column(db.String(255), nullable=False)
    value_json = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint("kind", "key", name="uq_catalog_entry_kind_key"),
    )
