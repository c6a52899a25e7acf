from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from docindex.domain.entities import DocumentationSite, sort_versions
from docindex.domain.models import SearchIndex, SiteConfig
from docindex.storage.json_db_manager import JsonIndexStorage


def test_initialize_writes_default_site_config(storage: JsonIndexStorage, data_dir: Path) -> None:
    raw = json.loads((data_dir / "site.json").read_text(encoding="utf-8"))
    assert raw["variable_name"] == "documenterSearchIndex"
    assert raw["refresh_interval_seconds"] == 3600
    assert storage.get_all_versions() == []


def test_unreadable_site_config_falls_back_to_defaults(data_dir: Path) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "site.json").write_text("{not json", encoding="utf-8")
    db = JsonIndexStorage(data_dir)
    db.initialize()
    assert db.get_site_config().site_name == SiteConfig().site_name


def test_save_version_writes_script_and_metadata(
    storage: JsonIndexStorage, data_dir: Path, fixture_index: SearchIndex, fixture_text: str
) -> None:
    metadata = storage.save_version("v2.1.1", fixture_index)

    script = data_dir / "versions" / "v2.1.1" / "search_index.js"
    assert script.read_text(encoding="utf-8") == fixture_text
    assert metadata.record_count == 27
    assert metadata.categories["method"] == 15
    assert metadata.sha256 == hashlib.sha256(fixture_text.encode("utf-8")).hexdigest()
    assert storage.get_index_path("v2.1.1") == script

    stored = json.loads((data_dir / "versions" / "v2.1.1" / "version.json").read_text(encoding="utf-8"))
    assert stored["source"] == "local"
    assert "storage_path" not in stored


def test_catalog_survives_rebuild(storage: JsonIndexStorage, data_dir: Path, fixture_index: SearchIndex) -> None:
    storage.save_version("stable", fixture_index, source="financecore")

    reopened = JsonIndexStorage(data_dir)
    reopened.initialize()
    entry = reopened.get_version("stable")
    assert entry is not None
    assert entry.metadata.source == "financecore"
    assert entry.metadata.record_count == 27
    assert entry.index.records == fixture_index.records


def test_rebuild_skips_broken_versions(storage: JsonIndexStorage, data_dir: Path, fixture_index: SearchIndex) -> None:
    storage.save_version("v1", fixture_index)
    broken = data_dir / "versions" / "v2"
    broken.mkdir(parents=True)
    (broken / "search_index.js").write_text("var x = [1, 2", encoding="utf-8")
    (data_dir / "versions" / "notes.txt").write_text("ignored", encoding="utf-8")

    storage.rebuild_catalog()
    assert [m.version for m in storage.get_all_versions()] == ["v1"]
    assert storage.get_catalog().last_built_at is not None


def test_rebuild_skips_index_that_is_not_utf8(storage: JsonIndexStorage, data_dir: Path, fixture_index: SearchIndex) -> None:
    storage.save_version("v1", fixture_index)
    broken = data_dir / "versions" / "v2"
    broken.mkdir(parents=True)
    (broken / "search_index.js").write_bytes(b"var x = [\xff\xfe]")

    reopened = JsonIndexStorage(data_dir)
    reopened.initialize()
    assert [m.version for m in reopened.get_all_versions()] == ["v1"]

    storage.rebuild_catalog()
    assert [m.version for m in storage.get_all_versions()] == ["v1"]


def test_external_edit_is_picked_up_on_rebuild(storage: JsonIndexStorage, data_dir: Path, fixture_index: SearchIndex) -> None:
    storage.save_version("dev", fixture_index)
    script = data_dir / "versions" / "dev" / "search_index.js"
    script.write_text(
        'var documenterSearchIndex = {"docs":\n[{"location":"","page":"Home","title":"Home","text":"","category":"page"}]\n}\n',
        encoding="utf-8",
    )

    storage.rebuild_catalog()
    metadata = storage.get_version("dev").metadata
    assert metadata.record_count == 1
    assert metadata.categories == {"page": 1}
    assert metadata.sha256 == hashlib.sha256(script.read_bytes()).hexdigest()


def test_delete_version(storage: JsonIndexStorage, data_dir: Path, fixture_index: SearchIndex) -> None:
    storage.save_version("v1", fixture_index)
    storage.delete_version("v1")
    assert storage.get_version("v1") is None
    assert not (data_dir / "versions" / "v1").exists()

    with pytest.raises(ValueError):
        storage.delete_version("v1")
    with pytest.raises(ValueError):
        storage.get_index_path("v1")


@pytest.mark.parametrize("name", ["", " ", ".", "..", "../escape", "a/b", "a\\b"])
def test_unsafe_version_names_are_rejected(storage: JsonIndexStorage, fixture_index: SearchIndex, name: str) -> None:
    with pytest.raises(ValueError, match="Invalid version name"):
        storage.save_version(name, fixture_index)


def test_sort_versions() -> None:
    assert sort_versions(["v1.2.0", "dev", "v1.10.0", "stable", "v2.0", "preview"]) == [
        "stable", "dev", "preview", "v2.0", "v1.10.0", "v1.2.0",
    ]


def test_site_lists_versions_and_default(storage: JsonIndexStorage, fixture_index: SearchIndex) -> None:
    site = DocumentationSite(storage)
    assert site.default_version() is None

    storage.save_version("v1.0.0", fixture_index)
    storage.save_version("v1.1.0", fixture_index)
    assert [m.version for m in site.list_versions()] == ["v1.1.0", "v1.0.0"]
    assert site.default_version() == "v1.1.0"

    config = storage.get_site_config()
    config.default_version = "v1.0.0"
    storage.save_site_config(config)
    assert site.default_version() == "v1.0.0"


def test_validate_and_store_rejects_invalid_text(storage: JsonIndexStorage) -> None:
    site = DocumentationSite(storage)
    report, metadata = site.validate_and_store("v1", 'var x = [{"location": ""}]')
    assert metadata is None
    assert not report.ok
    assert storage.get_version("v1") is None


def test_document_version_records_paging(storage: JsonIndexStorage, fixture_index: SearchIndex) -> None:
    storage.save_version("v1", fixture_index)
    doc = DocumentationSite(storage).get_version("v1")
    assert len(doc.records()) == 27
    assert [r.title for r in doc.records(category="type", offset=1, limit=2)] == [
        "FinanceCore.Cashflow",
        "FinanceCore.Composite",
    ]
