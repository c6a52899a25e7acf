"""
Full-text search over a search index, scoring records the way the
documentation site's search box ranks them: title hits dominate, body text
breaks ties.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from docindex.domain.models import (
    FieldFilter,
    SearchHit,
    SearchIndex,
    SearchRecord,
    SearchRequest,
)
from docindex.domain.search_utils import make_excerpt, match_text, tokenize

logger = logging.getLogger(__name__)

TITLE_EXACT_SCORE = 100.0
TITLE_PREFIX_SCORE = 50.0
TITLE_SUBSTRING_SCORE = 20.0
TEXT_OCCURRENCE_SCORE = 1.0
TEXT_OCCURRENCE_CAP = 10
PHRASE_BONUS = 25.0

DEFAULT_MAX_RESULTS = 50


def query_terms(query: str) -> List[str]:
    terms: List[str] = []
    for token in tokenize(query):
        if token not in terms:
            terms.append(token)
    return terms


def _term_score(term: str, title_tokens: List[str], title: str, text_tokens: List[str]) -> float:
    score = 0.0
    if term in title_tokens:
        score += TITLE_EXACT_SCORE
    elif any(token.startswith(term) for token in title_tokens):
        score += TITLE_PREFIX_SCORE
    elif term in title:
        score += TITLE_SUBSTRING_SCORE

    occurrences = sum(1 for token in text_tokens if token.startswith(term))
    score += TEXT_OCCURRENCE_SCORE * min(occurrences, TEXT_OCCURRENCE_CAP)
    return score


def score_record(record: SearchRecord, terms: List[str], phrase: str) -> float:
    """
    Score one record against the query terms; 0 means "not a match".

    Every term has to hit the title or the text.
    """
    title = record.title.lower()
    title_tokens = tokenize(record.title)
    text_tokens = tokenize(record.text)

    total = 0.0
    for term in terms:
        term_score = _term_score(term, title_tokens, title, text_tokens)
        if term_score == 0:
            return 0.0
        total += term_score

    if len(terms) > 1 and phrase and phrase in title:
        total += PHRASE_BONUS
    return total


def record_passes(record: SearchRecord, categories: List[str], filters: List[FieldFilter]) -> bool:
    if categories and record.category not in categories:
        return False
    for flt in filters:
        if not match_text(getattr(record, flt.field), flt.keyword, flt.match_type):
            return False
    return True


def search(index: SearchIndex, request: SearchRequest, max_results: Optional[int] = None) -> List[SearchHit]:
    """
    Run a search request against an index.

    Results are deduplicated by (location, title), keeping the best scoring
    record, and sorted by score, then by position in the index. A request
    without query terms returns every record passing the category and field
    filters in index order, or nothing when there are no filters either.
    """
    limit = request.max_results or max_results or DEFAULT_MAX_RESULTS
    terms = query_terms(request.query)
    phrase = " ".join(request.query.lower().split())

    if not terms and not request.categories and not request.filters:
        return []

    best: Dict[Tuple[str, str], SearchHit] = {}
    for position, record in enumerate(index.records):
        if not record_passes(record, request.categories, request.filters):
            continue

        if terms:
            score = score_record(record, terms, phrase)
            if score <= 0:
                continue
        else:
            score = 0.0

        key = (record.location, record.title)
        current = best.get(key)
        if current is None or score > current.score:
            best[key] = SearchHit(
                record=record,
                score=score,
                position=position,
                excerpt=make_excerpt(record.text, terms),
            )

    hits = sorted(best.values(), key=lambda hit: (-hit.score, hit.position))
    logger.debug(f"Query {request.query!r} matched {len(hits)} records (limit {limit})")
    return hits[:limit]
