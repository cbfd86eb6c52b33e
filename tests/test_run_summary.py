"""Tests for run summary functionality."""

import json

from invoice_memory.run_summary import RunSummary


def test_run_summary_creation():
    """Test RunSummary creation."""
    summary = RunSummary.create(input_path="invoices.json", profile_name="default", memory_backend="sqlite")

    assert summary.run_id
    assert summary.input_path == "invoices.json"
    assert summary.status == "RUNNING"
    assert summary.started_at is not None
    assert summary.finished_at is None
    assert summary.profile_name == "default"
    assert summary.memory_backend == "sqlite"
    assert summary.processed_count == 0


def test_run_ids_are_unique():
    assert RunSummary.create("a").run_id != RunSummary.create("a").run_id


def test_complete():
    summary = RunSummary.create("invoices.json")
    summary.complete()
    assert summary.status == "COMPLETED"
    assert summary.finished_at is not None

    summary.complete("FAILED")
    assert summary.status == "FAILED"


def test_add_error():
    summary = RunSummary.create("invoices.json")
    summary.add_error("INV-1", ValueError("bad totals"))

    assert summary.errors == [{"invoice_id": "INV-1", "type": "ValueError", "message": "bad totals"}]


def test_save(tmp_path):
    """Test saving to a new directory."""
    summary = RunSummary.create("invoices.json")
    summary.review_count = 3
    summary.complete()
    summary_path = tmp_path / "out" / "run_summary.json"

    summary.save(summary_path)

    assert summary_path.exists()
    assert not summary_path.with_suffix(".json.tmp").exists()
    with open(summary_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    assert data["run_id"] == summary.run_id
    assert data["status"] == "COMPLETED"
    assert data["review_count"] == 3
    assert data == summary.to_dict()
