from __future__ import annotations

from pathlib import Path

import pytest

from docindex.core import dependencies
from docindex.storage.json_db_manager import JsonIndexStorage
from docindex.storage.script_codec import parse_search_index
from docindex.domain.models import SearchIndex

FIXTURES = Path(__file__).resolve().parent / "fixtures"
FIXTURE_INDEX = FIXTURES / "search_index.js"
FIXTURE_MANIFEST = FIXTURES / "manifest.yaml"


@pytest.fixture
def fixture_text() -> str:
    return FIXTURE_INDEX.read_text(encoding="utf-8")


@pytest.fixture
def fixture_index(fixture_text: str) -> SearchIndex:
    return parse_search_index(fixture_text)


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "data"
    monkeypatch.setenv(dependencies.DATA_ROOT_ENV_VAR, str(path))
    dependencies.reset_dependencies()
    yield path
    dependencies.reset_dependencies()


@pytest.fixture
def storage(data_dir: Path) -> JsonIndexStorage:
    db = JsonIndexStorage(data_dir)
    db.initialize()
    return db
