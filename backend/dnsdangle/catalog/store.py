# dnsdangle/catalog/store.py
"""
Database-backed catalog store.

The scan pipeline never writes here; it asks load_catalogs() for a fresh
snapshot right before classifying each hostname, so a PUT /config takes
effect for hostnames that have not reached classification yet.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError

from dnsdangle.extensions import db
from dnsdangle.models import CatalogEntry
from dnsdangle.scanner.catalogs import (
    DEFAULT_FINGERPRINTS,
    DEFAULT_PROVIDERS,
    Catalogs,
    CatalogValidationError,
    validate_fingerprint_catalog,
    validate_provider_catalog,
)

logger = logging.getLogger(__name__)

KIND_FINGERPRINTS = "fingerprints"
KIND_PROVIDERS = "providers"
CATALOG_KINDS = (KIND_FINGERPRINTS, KIND_PROVIDERS)

_VALIDATORS = {
    KIND_FINGERPRINTS: validate_fingerprint_catalog,
    KIND_PROVIDERS: validate_provider_catalog,
}

_DEFAULTS = {
    KIND_FINGERPRINTS: DEFAULT_FINGERPRINTS,
    KIND_PROVIDERS: DEFAULT_PROVIDERS,
}


def _check_kind(kind: str) -> str:
    if kind not in CATALOG_KINDS:
        raise CatalogValidationError(
            f"Unknown catalog type '{kind}'. Expected one of: {', '.join(CATALOG_KINDS)}."
        )
    return kind


def _entries(kind: str) -> List[Tuple[str, Any]]:
    rows = (
        CatalogEntry.query
        .filter_by(kind=kind)
        .order_by(CatalogEntry.position.asc(), CatalogEntry.id.asc())
        .all()
    )
    return [(r.key, r.value_json) for r in rows]


def read_catalog(kind: str) -> Dict[str, Any]:
    """Catalog as an insertion-ordered dict (order = lookup order)."""
    return dict(_entries(_check_kind(kind)))


def replace_catalog(kind: str, data: Any) -> int:
    """
    Validate and replace one catalog wholesale. Returns the entry count.
    Raises CatalogValidationError without touching the stored catalog.
    """
    clean = _VALIDATORS[_check_kind(kind)](data)

    try:
        CatalogEntry.query.filter_by(kind=kind).delete()
        for position, (key, value) in enumerate(clean.items()):
            db.session.add(CatalogEntry(kind=kind, position=position, key=key, value_json=value))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Replaced {kind} catalog: {len(clean)} entries")
    return len(clean)


def load_catalogs() -> Catalogs:
    """Fresh immutable snapshot of both catalogs."""
    fingerprints = _entries(KIND_FINGERPRINTS)
    providers = _entries(KIND_PROVIDERS)
    return Catalogs.from_mappings(fingerprints, providers)


def seed_default_catalogs(force: bool = False) -> List[str]:
    """
    Write the built-in catalogs for every kind that has no rows yet
    (or for every kind when force=True). Returns the kinds written.

    Workers starting together on a shared database may race to seed the
    same kind; the loser hits the unique constraint and leaves the winner's
    rows in place.
    """
    seeded: List[str] = []
    for kind in CATALOG_KINDS:
        has_rows = CatalogEntry.query.filter_by(kind=kind).first() is not None
        if has_rows and not force:
            continue
        try:
            replace_catalog(kind, dict(_DEFAULTS[kind]))
        except IntegrityError as e:
            logger.warning(f"Skipped seeding {kind} catalog, another worker seeded it first: {e.orig}")
            continue
        seeded.append(kind)

    if seeded:
        logger.info(f"Seeded default catalogs: {', '.join(seeded)}")
    return seeded
