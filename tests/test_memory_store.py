"""Tests for the vendor memory stores (in-memory, JSON file, SQLite)."""

import json
import sqlite3
from unittest.mock import patch

import pytest

from invoice_memory.learning.database import SqliteVendorMemoryStore
from invoice_memory.learning.json_store import JsonVendorMemoryStore
from invoice_memory.learning.store import (
    InMemoryVendorMemoryStore,
    MemoryStoreError,
    create_memory_store,
)
from invoice_memory.models.memory import ExtractionPattern, ValueCorrection

VENDOR = "Supplier GmbH"
SERVICE_DATE_REGEX = r"Leistungsdatum:?\s*(\d{2}\.\d{2}\.\d{4})"


def _pattern(confidence: float = 0.6) -> ExtractionPattern:
    return ExtractionPattern(field="serviceDate", regex_pattern=SERVICE_DATE_REGEX, confidence=confidence)


def _sku_rule() -> ValueCorrection:
    return ValueCorrection(field="lineItems.sku", corrected_value="FREIGHT", trigger_value="Seefracht")


@pytest.fixture(params=["memory", "json", "sqlite"])
def store(request, tmp_path):
    """Every store implementation, empty."""
    if request.param == "memory":
        return InMemoryVendorMemoryStore()
    if request.param == "json":
        return JsonVendorMemoryStore(tmp_path / "memory.json")
    return SqliteVendorMemoryStore(tmp_path / "memory.db")


class TestStoreContract:
    """Behavior shared by all stores."""

    def test_unknown_vendor_is_empty(self, store):
        memory = store.get_vendor_memory("Nobody Ltd")
        assert memory.vendor_name == "Nobody Ltd"
        assert memory.is_empty

    def test_add_pattern(self, store):
        store.add_pattern(VENDOR, _pattern())
        memory = store.get_vendor_memory(VENDOR)

        assert len(memory.patterns) == 1
        assert memory.patterns[0].regex_pattern == SERVICE_DATE_REGEX
        assert memory.patterns[0].confidence == pytest.approx(0.6)
        assert memory.patterns[0].usage_count == 1

    def test_repeated_pattern_is_reinforced_not_duplicated(self, store):
        store.add_pattern(VENDOR, _pattern())
        store.add_pattern(VENDOR, _pattern())
        patterns = store.get_vendor_memory(VENDOR).patterns

        assert len(patterns) == 1
        assert patterns[0].usage_count == 2
        assert patterns[0].confidence == pytest.approx(0.65)

    def test_reinforcement_caps_at_one(self, store):
        for _ in range(12):
            store.add_pattern(VENDOR, _pattern())
        pattern = store.get_vendor_memory(VENDOR).patterns[0]

        assert pattern.usage_count == 12
        assert pattern.confidence == 1.0

    def test_confidence_never_decreases(self, store):
        store.add_pattern(VENDOR, _pattern(confidence=0.6))
        store.add_pattern(VENDOR, _pattern(confidence=0.3))
        assert store.get_vendor_memory(VENDOR).patterns[0].confidence == pytest.approx(0.65)

    def test_equal_numbers_are_one_rule(self, store):
        for value in (1.0, 1):
            store.add_static_correction(
                VENDOR, ValueCorrection(field="taxRate", corrected_value=value, condition="if_missing")
            )
        rules = store.get_vendor_memory(VENDOR).static_corrections

        assert len(rules) == 1
        assert rules[0].usage_count == 2
        assert rules[0].corrected_value == 1

    def test_patterns_are_scoped_by_vendor(self, store):
        store.add_pattern(VENDOR, _pattern())
        assert store.get_vendor_memory("Parts AG").is_empty

    def test_static_correction_upsert(self, store):
        store.add_static_correction(VENDOR, _sku_rule())
        store.add_static_correction(VENDOR, _sku_rule())
        rules = store.get_vendor_memory(VENDOR).static_corrections

        assert len(rules) == 1
        assert rules[0].trigger_value == "Seefracht"
        assert rules[0].corrected_value == "FREIGHT"
        assert rules[0].usage_count == 2
        assert rules[0].confidence == pytest.approx(0.85)

    def test_missing_trigger_is_its_own_identity(self, store):
        store.add_static_correction(VENDOR, ValueCorrection(field="currency", corrected_value="EUR"))
        store.add_static_correction(
            VENDOR, ValueCorrection(field="currency", corrected_value="EUR", trigger_value="Zürich")
        )
        store.add_static_correction(VENDOR, ValueCorrection(field="currency", corrected_value="EUR"))
        rules = store.get_vendor_memory(VENDOR).static_corrections

        assert len(rules) == 2
        by_trigger = {r.trigger_value: r for r in rules}
        assert by_trigger[None].usage_count == 2
        assert by_trigger["Zürich"].usage_count == 1

    def test_different_corrected_values_stay_distinct(self, store):
        store.add_static_correction(VENDOR, ValueCorrection(field="currency", corrected_value="EUR"))
        store.add_static_correction(VENDOR, ValueCorrection(field="currency", corrected_value="CHF"))
        assert len(store.get_vendor_memory(VENDOR).static_corrections) == 2

    def test_condition_and_numeric_values_survive(self, store):
        store.add_static_correction(
            VENDOR, ValueCorrection(field="taxRate", corrected_value=0.19, condition="if_missing")
        )
        rule = store.get_vendor_memory(VENDOR).static_corrections[0]

        assert rule.corrected_value == pytest.approx(0.19)
        assert isinstance(rule.corrected_value, float)
        assert rule.condition == "if_missing"

    def test_snapshot_does_not_mutate_store(self, store):
        store.add_pattern(VENDOR, _pattern())
        snapshot = store.get_vendor_memory(VENDOR)
        snapshot.patterns.clear()
        snapshot.static_corrections.append(_sku_rule())

        memory = store.get_vendor_memory(VENDOR)
        assert len(memory.patterns) == 1
        assert memory.static_corrections == []

    def test_apply_updates_writes_everything(self, store):
        store.apply_updates(VENDOR, patterns=[_pattern()], corrections=[_sku_rule()])
        memory = store.get_vendor_memory(VENDOR)
        assert len(memory.patterns) == 1
        assert len(memory.static_corrections) == 1

    def test_reset_and_list_vendors(self, store):
        store.add_pattern("Parts AG", _pattern())
        store.add_static_correction(VENDOR, _sku_rule())
        assert store.list_vendors() == ["Parts AG", VENDOR]

        store.reset()
        assert store.list_vendors() == []
        assert store.get_vendor_memory(VENDOR).is_empty


class TestJsonStore:
    """JSON file backend specifics."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "memory.json"
        JsonVendorMemoryStore(path).apply_updates(VENDOR, patterns=[_pattern()], corrections=[_sku_rule()])

        memory = JsonVendorMemoryStore(path).get_vendor_memory(VENDOR)
        assert memory.patterns[0].regex_pattern == SERVICE_DATE_REGEX
        assert memory.static_corrections[0].trigger_value == "Seefracht"

    def test_file_shape(self, tmp_path):
        path = tmp_path / "memory.json"
        JsonVendorMemoryStore(path).add_static_correction(VENDOR, _sku_rule())

        data = json.loads(path.read_text(encoding="utf-8"))
        record = data["vendors"][VENDOR]
        assert record["vendorName"] == VENDOR
        assert record["staticCorrections"][0]["triggerValue"] == "Seefracht"
        assert record["patterns"] == []

    def test_corrupted_file_raises(self, tmp_path):
        path = tmp_path / "memory.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(MemoryStoreError) as exc_info:
            JsonVendorMemoryStore(path)
        assert exc_info.value.operation == "load"

    def test_invalid_record_raises(self, tmp_path):
        path = tmp_path / "memory.json"
        path.write_text(json.dumps({"vendors": {VENDOR: {"patterns": []}}}), encoding="utf-8")

        with pytest.raises(MemoryStoreError):
            JsonVendorMemoryStore(path)

    def test_failed_write_leaves_store_unchanged(self, tmp_path):
        path = tmp_path / "memory.json"
        store = JsonVendorMemoryStore(path)
        store.add_pattern(VENDOR, _pattern())

        with patch("invoice_memory.learning.json_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(MemoryStoreError) as exc_info:
                store.apply_updates(VENDOR, patterns=[_pattern()], corrections=[_sku_rule()])

        assert exc_info.value.vendor == VENDOR
        assert exc_info.value.operation == "apply_updates"
        memory = store.get_vendor_memory(VENDOR)
        assert memory.patterns[0].usage_count == 1
        assert memory.static_corrections == []
        assert JsonVendorMemoryStore(path).get_vendor_memory(VENDOR).static_corrections == []


class TestSqliteStore:
    """SQLite backend specifics."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "memory.db"
        SqliteVendorMemoryStore(path).add_pattern(VENDOR, _pattern())
        assert len(SqliteVendorMemoryStore(path).get_vendor_memory(VENDOR).patterns) == 1

    def test_failed_batch_is_rolled_back(self, tmp_path):
        store = SqliteVendorMemoryStore(tmp_path / "memory.db")

        with patch.object(
            SqliteVendorMemoryStore,
            "_upsert_static_correction",
            side_effect=sqlite3.OperationalError("disk I/O error"),
        ):
            with pytest.raises(MemoryStoreError) as exc_info:
                store.apply_updates(VENDOR, patterns=[_pattern()], corrections=[_sku_rule()])

        assert exc_info.value.vendor == VENDOR
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        assert store.get_vendor_memory(VENDOR).is_empty

    def test_one_row_per_key(self, tmp_path):
        path = tmp_path / "memory.db"
        store = SqliteVendorMemoryStore(path)
        for _ in range(3):
            store.add_static_correction(VENDOR, ValueCorrection(field="currency", corrected_value="EUR"))

        conn = sqlite3.connect(str(path))
        try:
            count = conn.execute("SELECT COUNT(*) FROM static_corrections").fetchone()[0]
        finally:
            conn.close()
        assert count == 1


class TestCreateMemoryStore:
    """Test the store factory."""

    def test_memory_backend(self):
        assert isinstance(create_memory_store("memory"), InMemoryVendorMemoryStore)

    def test_json_backend(self, tmp_path):
        store = create_memory_store("json", tmp_path / "m.json")
        assert isinstance(store, JsonVendorMemoryStore)

    def test_sqlite_backend(self, tmp_path):
        store = create_memory_store("sqlite", tmp_path / "m.db")
        assert isinstance(store, SqliteVendorMemoryStore)

    def test_backend_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORY_BACKEND", "sqlite")
        monkeypatch.setenv("MEMORY_DB_PATH", str(tmp_path / "env.db"))
        store = create_memory_store()
        assert isinstance(store, SqliteVendorMemoryStore)
        assert store.db_path == tmp_path / "env.db"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown memory backend"):
            create_memory_store("redis")
