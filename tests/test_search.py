from __future__ import annotations

import pytest

from docindex.domain.models import FieldFilter, SearchIndex, SearchRecord, SearchRequest
from docindex.domain.search_utils import make_excerpt, match_text, slugify, tokenize
from docindex.services.search import search


def test_tokenize_splits_qualified_names() -> None:
    assert tokenize("See FinanceCore.irr, then rate.") == [
        "see", "financecore.irr", "financecore", "irr", "then", "rate",
    ]


@pytest.mark.parametrize(
    "value, keyword, match_type, expected",
    [
        ("FinanceCore.irr", "FinanceCore.irr", "Exact", True),
        ("FinanceCore.irr", "financecore.irr", "Exact", False),
        ("FinanceCore.irr", "financecore.IRR", "CaseInsensitive", True),
        ("FinanceCore.irr", "finance", "StartsWith", True),
        ("FinanceCore.irr", "core.i", None, True),
        ("FinanceCore.irr", "Finance*.?rr", "Wildcard", True),
        ("Base.convert", "Finance*", "Wildcard", False),
    ],
)
def test_match_text(value: str, keyword: str, match_type: str, expected: bool) -> None:
    assert match_text(value, keyword, match_type) is expected


def test_unknown_match_type_raises() -> None:
    with pytest.raises(ValueError):
        match_text("a", "a", "Fuzzy")


def test_slugify() -> None:
    assert slugify("Getting Started") == "Getting-Started"
    assert slugify("  What's new?  ") == "Whats-new"
    assert slugify("FinanceCore.Rate") == "FinanceCore.Rate"


def test_excerpt_centres_on_match() -> None:
    text = "lorem " * 40 + "needle " + "ipsum " * 40
    excerpt = make_excerpt(text, ["needle"], width=60)
    assert "needle" in excerpt
    assert excerpt.startswith("...") and excerpt.endswith("...")
    assert make_excerpt("short text", ["x"]) == "short text"


def test_exact_title_ranks_first(fixture_index: SearchIndex) -> None:
    hits = search(fixture_index, SearchRequest(query="irr"))
    assert hits[0].record.title == "FinanceCore.irr"
    assert hits[0].record.category == "function"
    assert all(hit.score > 0 for hit in hits)


def test_same_title_different_locations_are_kept(fixture_index: SearchIndex) -> None:
    hits = search(fixture_index, SearchRequest(query="Continuous"))
    top = hits[:2]
    assert {hit.record.title for hit in top} == {"FinanceCore.Continuous"}
    assert {hit.record.location for hit in top} == {
        "#FinanceCore.Continuous",
        "#FinanceCore.Continuous-Tuple{Any}",
    }


def test_duplicate_location_and_title_collapse(fixture_index: SearchIndex) -> None:
    hits = search(fixture_index, SearchRequest(query="FinanceCore", categories=["page"]))
    assert len(hits) == 1
    assert hits[0].position == 0
    assert hits[0].record.text == "CurrentModule = FinanceCore"


def test_all_terms_must_match(fixture_index: SearchIndex) -> None:
    hits = search(fixture_index, SearchRequest(query="present value"))
    assert hits
    assert hits[0].record.title == "FinanceCore.present_value"
    assert search(fixture_index, SearchRequest(query="present zebra")) == []


def test_filters_without_query_return_index_order(fixture_index: SearchIndex) -> None:
    request = SearchRequest(
        categories=["method"],
        filters=[FieldFilter(field="title", keyword="Base.", match_type="StartsWith")],
    )
    hits = search(fixture_index, request)
    assert [hit.record.title for hit in hits] == [
        "Base.:*", "Base.:+", "Base.:-", "Base.:/", "Base.:<", "Base.:>", "Base.convert",
    ]
    assert [hit.position for hit in hits] == sorted(hit.position for hit in hits)


def test_empty_request_returns_nothing(fixture_index: SearchIndex) -> None:
    assert search(fixture_index, SearchRequest()) == []


def test_max_results(fixture_index: SearchIndex) -> None:
    assert len(search(fixture_index, SearchRequest(query="rate", max_results=3))) == 3
    assert len(search(fixture_index, SearchRequest(query="rate"), max_results=2)) == 2


def test_title_beats_body_text() -> None:
    index = SearchIndex(records=[
        SearchRecord(location="#a", page="P", title="Other", text="cashflow " * 20, category="method"),
        SearchRecord(location="#b", page="P", title="Cashflow", text="", category="type"),
    ])
    hits = search(index, SearchRequest(query="cashflow"))
    assert [hit.record.location for hit in hits] == ["#b", "#a"]
    assert hits[1].score == 10
