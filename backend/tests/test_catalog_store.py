# tests/test_catalog_store.py
from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from dnsdangle.catalog import store
from dnsdangle.catalog.store import load_catalogs, read_catalog, replace_catalog, seed_default_catalogs
from dnsdangle.extensions import db
from dnsdangle.models import CatalogEntry
from dnsdangle.scanner.catalogs import (
    Catalogs,
    CatalogValidationError,
    default_catalogs,
    validate_fingerprint_catalog,
    validate_provider_catalog,
)


def test_app_start_seeds_defaults(app):
    with app.app_context():
        assert load_catalogs() == default_catalogs()


def test_seeding_is_idempotent_unless_forced(app):
    with app.app_context():
        replace_catalog("providers", {"only.example": "Only"})

        assert seed_default_catalogs() == []
        assert read_catalog("providers") == {"only.example": "Only"}

        assert seed_default_catalogs(force=True) == ["fingerprints", "providers"]
        assert read_catalog("providers") == dict(default_catalogs().providers)


def test_empty_kind_is_reseeded(app):
    with app.app_context():
        CatalogEntry.query.filter_by(kind="fingerprints").delete()

        assert seed_default_catalogs() == ["fingerprints"]


def test_replace_keeps_order_and_cleans_values(app):
    with app.app_context():
        count = replace_catalog("fingerprints", {
            " z.example ": ["Gone", "  "],
            "a.example": [],
        })

        assert count == 2
        assert list(read_catalog("fingerprints").items()) == [("z.example", ["Gone"]), ("a.example", [])]
        assert load_catalogs().fingerprints == (("z.example", ("Gone",)), ("a.example", ()))


def test_replace_rejects_bad_shape_without_touching_store(app):
    with app.app_context():
        before = read_catalog("providers")

        with pytest.raises(CatalogValidationError):
            replace_catalog("providers", {"x.example": ["not", "a", "name"]})

        assert read_catalog("providers") == before


def test_unknown_kind_is_rejected(app):
    with app.app_context():
        with pytest.raises(CatalogValidationError):
            read_catalog("secrets")


@pytest.mark.parametrize("data", [[], "text", {"": ["x"]}, {"a.example": [1, 2]}])
def test_fingerprint_validation_errors(data):
    with pytest.raises(CatalogValidationError):
        validate_fingerprint_catalog(data)


@pytest.mark.parametrize("data", [None, {"a.example": ""}, {"  ": "Name"}])
def test_provider_validation_errors(data):
    with pytest.raises(CatalogValidationError):
        validate_provider_catalog(data)


def test_catalogs_accept_dicts_and_pairs():
    from_dict = Catalogs.from_mappings({"a.example": ["x"]}, {"a.example": "A"})
    from_pairs = Catalogs.from_mappings([("a.example", ["x"])], [("a.example", "A")])

    assert from_dict == from_pairs
    assert from_dict.provider_name("a.example") == "A"
    assert from_dict.provider_name("b.example") is None


def test_seeding_race_lost_to_another_worker_is_not_fatal(app, monkeypatch):
    def seeded_elsewhere(kind, data):
        raise IntegrityError("INSERT INTO catalog_entry", {}, Exception("UNIQUE constraint failed"))

    with app.app_context():
        CatalogEntry.query.filter_by(kind="providers").delete()
        db.session.commit()
        monkeypatch.setattr(store, "replace_catalog", seeded_elsewhere)

        assert seed_default_catalogs() == []
