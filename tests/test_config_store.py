import json
import threading

import pytest

from portal.core.database import create_session_factory
from portal.core.exceptions import FatalInitError
from portal.core.security import is_placeholder_hash, verify_password
from portal.models.settings_record import SettingsRecord
from portal.services.config_store import (
    JsonConfigStore,
    ProductData,
    SettingsPatch,
    SqlConfigStore,
    normalize_catalog,
)
from portal.services.migration_runner import MigrationRunner


def test_initialized_store_has_seed_catalog_and_locked_gate(store):
    snapshot = store.read()
    assert snapshot.exclusive_enabled is False
    assert snapshot.password_hash
    assert is_placeholder_hash(snapshot.password_hash)
    assert [p.id for p in snapshot.products] == ["EX-01", "EX-02"]
    assert snapshot.products[0].price_cents is None


def test_initialize_twice_keeps_a_single_settings_row(sql_store, session_factory):
    sql_store.initialize()
    sql_store.initialize("another-password")

    db = session_factory()
    try:
        assert db.query(SettingsRecord).count() == 1
    finally:
        db.close()
    assert is_placeholder_hash(sql_store.read().password_hash)


def test_initialize_hashes_configured_default_password(tmp_path):
    store = JsonConfigStore(tmp_path / "nested" / "config.json")
    snapshot = store.initialize("QREW2025")
    assert verify_password("QREW2025", snapshot.password_hash)
    assert verify_password("QREW2025", store.read().password_hash)


def test_write_changes_only_supplied_fields(store, password_hash):
    before = store.read()

    store.write(SettingsPatch(exclusive_enabled=True))
    after_flag = store.read()
    assert after_flag.exclusive_enabled is True
    assert after_flag.password_hash == before.password_hash
    assert after_flag.products == before.products

    store.write(SettingsPatch(password_hash=password_hash))
    after_password = store.read()
    assert after_password.exclusive_enabled is True
    assert after_password.password_hash == password_hash
    assert after_password.products == before.products


def test_catalog_replacement_is_full_and_ordered_by_id(store):
    store.write(SettingsPatch(products=[
        ProductData(id="EX-09", title="Late", price_cents=1500),
        ProductData(id="EX-03", title="Early", description="first", price_cents=0),
    ]))
    products = store.read().products
    assert [p.id for p in products] == ["EX-03", "EX-09"]
    assert products[0].price_cents == 0
    assert products[0].description == "first"
    assert store.get_product("EX-01") is None


def test_catalog_replacement_keeps_last_duplicate(store):
    store.write(SettingsPatch(products=[
        ProductData(id="EX-01", title="Old"),
        ProductData(id="EX-01", title="New", price_cents=100),
    ]))
    products = store.read().products
    assert len(products) == 1
    assert products[0].title == "New"
    assert products[0].price_cents == 100


def test_empty_catalog_is_allowed(store):
    store.write(SettingsPatch(products=[]))
    assert store.read().products == []


def test_empty_password_hash_is_rejected(store):
    with pytest.raises(ValueError):
        store.write(SettingsPatch(password_hash=""))
    assert store.read().password_hash


def test_sql_store_requires_initialization(engine):
    MigrationRunner(engine).upgrade_schema()
    store = SqlConfigStore(create_session_factory(engine))
    with pytest.raises(RuntimeError):
        store.read()


def test_json_store_requires_initialization(tmp_path):
    store = JsonConfigStore(tmp_path / "missing.json")
    with pytest.raises(RuntimeError):
        store.read()


def test_json_store_writes_legacy_document_layout(json_store):
    json_store.write(SettingsPatch(
        exclusive_enabled=True,
        products=[ProductData(id="EX-01", title="Drop", description="Limited", price_cents=2500)],
    ))
    document = json.loads(json_store.path.read_text(encoding="utf-8"))
    assert document["exclusiveEnabled"] is True
    assert document["exclusiveProducts"] == [
        {"id": "EX-01", "title": "Drop", "desc": "Limited", "priceCents": 2500}
    ]
    assert document["updatedAt"]
    assert list(json_store.path.parent.glob(".config-*")) == []


def test_json_store_initialize_fails_closed_on_corrupt_document(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(FatalInitError):
        JsonConfigStore(path).initialize()
    assert path.read_text(encoding="utf-8") == "{not json"


def test_json_store_fills_missing_hash_of_existing_document(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "exclusiveEnabled": True,
        "passwordHash": "",
        "exclusiveProducts": [{"id": "EX-01", "title": "Drop"}],
    }), encoding="utf-8")
    snapshot = JsonConfigStore(path).initialize("QREW2025")
    assert snapshot.exclusive_enabled is True
    assert verify_password("QREW2025", snapshot.password_hash)
    assert [p.id for p in snapshot.products] == ["EX-01"]


def test_concurrent_writes_never_tear_the_catalog(store):
    catalogs = [
        [ProductData(id=f"T{n}-{i}", title=f"Writer {n}", price_cents=n) for i in range(5)]
        for n in range(8)
    ]

    def _writer(catalog):
        for _ in range(5):
            store.write(SettingsPatch(products=catalog))

    threads = [threading.Thread(target=_writer, args=(catalog,)) for catalog in catalogs]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = store.read().products
    assert final in [normalize_catalog(catalog) for catalog in catalogs]


@pytest.mark.parametrize(
    "raw",
    [
        {"title": "No id"},
        {"id": "EX-01"},
        {"id": "EX-01", "title": "Negative", "priceCents": -5},
        {"id": "EX-01", "title": "Bad", "priceCents": "abc"},
        "EX-01",
    ],
)
def test_product_from_document_rejects_malformed_entries(raw):
    with pytest.raises(ValueError):
        ProductData.from_document(raw)


def test_product_from_document_reads_legacy_keys():
    product = ProductData.from_document({"id": "EX-01", "title": "Drop", "desc": "Limited"})
    assert product.description == "Limited"
    assert product.price_cents is None
    assert product.to_document() == {"id": "EX-01", "title": "Drop", "desc": "Limited"}
