from __future__ import annotations

import json
from pathlib import Path

import pytest

from docindex.domain.models import SearchIndex, SearchRecord
from docindex.storage.script_codec import (
    SearchIndexFormatError,
    dump_search_index,
    load_search_index,
    parse_script_value,
    parse_search_index,
    render_search_index,
)

RECORD = {"location": "#Foo.bar", "page": "API", "title": "Foo.bar", "text": "bar(x)", "category": "function"}


def test_parses_documenter_snapshot(fixture_index: SearchIndex) -> None:
    assert fixture_index.variable_name == "documenterSearchIndex"
    assert fixture_index.wrapped is True
    assert len(fixture_index.records) == 27
    assert fixture_index.category_counts() == {
        "page": 4,
        "section": 1,
        "type": 6,
        "method": 15,
        "function": 1,
    }
    first = fixture_index.records[0]
    assert first.location == ""
    assert first.page == "Home"
    assert first.text == "CurrentModule = FinanceCore"


def test_render_reproduces_snapshot_bytes(fixture_text: str, fixture_index: SearchIndex) -> None:
    assert render_search_index(fixture_index) == fixture_text


def test_non_ascii_text_is_written_literally(fixture_index: SearchIndex) -> None:
    rendered = render_search_index(fixture_index)
    assert "≡≡≡" in rendered
    assert "\\u2261" not in rendered


def test_bare_array_assignment_with_semicolon() -> None:
    index = parse_search_index(f"var searchIndex = {json.dumps([RECORD])};\n")
    assert index.wrapped is False
    assert index.variable_name == "searchIndex"
    assert index.records[0].title == "Foo.bar"
    assert render_search_index(index) == f"var searchIndex = {json.dumps([RECORD], separators=(',', ':'))};\n"


@pytest.mark.parametrize(
    "prefix",
    ["const docs = ", "let docs = ", "window.docs = ", "docs="],
)
def test_assignment_forms(prefix: str) -> None:
    name, value = parse_script_value(prefix + json.dumps({"docs": [RECORD]}))
    assert name == "docs"
    assert value["docs"][0]["location"] == "#Foo.bar"


def test_plain_json_without_assignment_uses_default_name() -> None:
    index = parse_search_index("\ufeff  " + json.dumps({"docs": [RECORD]}) + "  ")
    assert index.variable_name == "documenterSearchIndex"
    assert index.wrapped is True
    assert len(index.records) == 1


VERSIONS_JS = (
    "var DOC_VERSIONS = [\n"
    '  "stable",\n'
    '  "v2.1",\n'
    '  "dev",\n'
    "];\n"
    'var DOCUMENTER_NEWEST = "v2.1.1";\n'
    'var DOCUMENTER_STABLE = "stable";\n'
)


def test_versions_js_is_read_leniently() -> None:
    name, value = parse_script_value(VERSIONS_JS, lenient=True)
    assert name == "DOC_VERSIONS"
    assert value == ["stable", "v2.1", "dev"]


def test_versions_js_is_rejected_in_strict_mode() -> None:
    with pytest.raises(SearchIndexFormatError):
        parse_script_value(VERSIONS_JS)


def test_trailing_statement_after_index_is_rejected() -> None:
    with pytest.raises(SearchIndexFormatError, match="Unexpected content"):
        parse_search_index(f"var x = {json.dumps([RECORD])}; var y = 1;")


def test_extra_record_fields_survive_round_trip() -> None:
    raw = dict(RECORD, score_hint=3)
    index = parse_search_index(json.dumps([raw]))
    rendered = render_search_index(index)
    _, value = parse_script_value(rendered)
    assert value == [raw]
    assert list(value[0]) == ["location", "page", "title", "text", "category", "score_hint"]


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "empty"),
        ("   \n", "empty"),
        ("alert('hi')", "variable assignment"),
        ("var x = [{", "not valid JSON"),
        ('var x = {"items": []}', "'docs' array"),
        ("var x = 42", "'docs' array"),
    ],
)
def test_malformed_scripts_are_rejected(text: str, message: str) -> None:
    with pytest.raises(SearchIndexFormatError, match=message):
        parse_search_index(text)


def test_missing_field_reports_record_position() -> None:
    broken = {k: v for k, v in RECORD.items() if k != "category"}
    with pytest.raises(SearchIndexFormatError) as excinfo:
        parse_search_index(json.dumps([RECORD, broken]))
    assert excinfo.value.position == 1
    assert "category" in str(excinfo.value)


def test_non_string_field_is_rejected() -> None:
    with pytest.raises(SearchIndexFormatError, match="must be a string"):
        parse_search_index(json.dumps([dict(RECORD, text=None)]))


def test_format_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_search_index("var x = [1]")


def test_dump_and_load_file(tmp_path: Path) -> None:
    index = SearchIndex(records=[SearchRecord(**RECORD)])
    path = tmp_path / "out" / "search_index.js"
    dump_search_index(index, path)

    assert path.read_bytes().startswith(b'var documenterSearchIndex = {"docs":\n[')
    assert path.read_bytes().endswith(b"]\n}\n")
    assert load_search_index(path).records == index.records


def test_load_file_that_is_not_utf8(tmp_path: Path) -> None:
    path = tmp_path / "search_index.js"
    path.write_bytes(b"var x = [\xff\xfe]")
    with pytest.raises(SearchIndexFormatError, match="not valid UTF-8"):
        load_search_index(path)


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_search_index(tmp_path / "nope.js")
