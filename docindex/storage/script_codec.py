"""
Read and write client-side search index scripts.

A documentation site ships its search index as a script that binds a global
variable to a JSON payload, for example:

    var documenterSearchIndex = {"docs":
    [{"location":"","page":"Home","title":"Home","text":"...","category":"page"}]
    }

The payload is either the Documenter wrapper object ({"docs": [...]}) or a
bare array of records. Rendering writes the exact layout Documenter emits,
so parsing a generated file and rendering it again gives the same bytes.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple

from docindex.domain.models import (
    DEFAULT_VARIABLE_NAME,
    RECORD_FIELDS,
    SearchIndex,
    SearchRecord,
)

logger = logging.getLogger(__name__)

_ASSIGNMENT_RE = re.compile(
    r"^(?:(?:var|let|const)\s+|window\.)?(?P<name>[A-Za-z_$][\w$]*)\s*=\s*",
)
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")


class SearchIndexFormatError(ValueError):
    """Raised when a script or payload does not follow the search index layout."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.position = position


def parse_script_value(text: str, lenient: bool = False) -> Tuple[Optional[str], Any]:
    """
    Split a `var NAME = <json>` script into the variable name and decoded JSON.

    A document without an assignment is decoded as plain JSON and the name is
    returned as None. Only a `;` may follow the value. With `lenient=True`
    (used for hand-maintained scripts like versions.js) trailing commas are
    tolerated and any statements after the first assignment are ignored.
    """
    body = text.lstrip("\ufeff").strip()
    if not body:
        raise SearchIndexFormatError("Search index script is empty")

    name: Optional[str] = None
    if body[0] not in "[{":
        match = _ASSIGNMENT_RE.match(body)
        if not match:
            raise SearchIndexFormatError(
                "Expected a variable assignment such as 'var documenterSearchIndex = ...'"
            )
        name = match.group("name")
        body = body[match.end():]

    if lenient:
        body = _TRAILING_COMMA_RE.sub(r"\1", body)

    try:
        value, end = json.JSONDecoder().raw_decode(body)
    except json.JSONDecodeError as e:
        logger.debug(f"Failed to decode search index payload: {e}")
        raise SearchIndexFormatError(
            f"Payload is not valid JSON (line {e.lineno}, column {e.colno}): {e.msg}"
        ) from e

    rest = body[end:].strip()
    if rest.startswith(";"):
        rest = rest[1:].strip()
    if rest and not lenient:
        raise SearchIndexFormatError(f"Unexpected content after payload: {rest[:40]!r}")

    return name, value


def unwrap_records(value: Any) -> Tuple[List[Any], bool]:
    """
    Return the raw record list and whether it was wrapped in {"docs": [...]}.
    """
    if isinstance(value, list):
        return value, False
    if isinstance(value, dict) and isinstance(value.get("docs"), list):
        return value["docs"], True
    raise SearchIndexFormatError(
        "Top-level value must be an array of records or an object with a 'docs' array"
    )


def record_from_raw(raw: Any, position: int) -> SearchRecord:
    """
    Build a SearchRecord from decoded JSON, checking the five required string fields.
    """
    if not isinstance(raw, dict):
        raise SearchIndexFormatError(
            f"Record {position} is not an object (got {type(raw).__name__})",
            position=position,
        )
    for field in RECORD_FIELDS:
        if field not in raw:
            raise SearchIndexFormatError(
                f"Record {position} is missing required field '{field}'",
                position=position,
            )
        if not isinstance(raw[field], str):
            raise SearchIndexFormatError(
                f"Record {position} field '{field}' must be a string "
                f"(got {type(raw[field]).__name__})",
                position=position,
            )
    return SearchRecord.model_validate(raw)


def index_from_value(value: Any, variable_name: Optional[str] = None) -> SearchIndex:
    raw_records, wrapped = unwrap_records(value)
    records = [record_from_raw(raw, pos) for pos, raw in enumerate(raw_records)]
    return SearchIndex(
        records=records,
        variable_name=variable_name or DEFAULT_VARIABLE_NAME,
        wrapped=wrapped,
    )


def parse_search_index(text: str) -> SearchIndex:
    """
    Parse the text of a search_index.js file (or a bare JSON payload).

    Raises:
        SearchIndexFormatError: if the text is not an assignment of a valid
            record array, or a record lacks one of the required string fields.
    """
    name, value = parse_script_value(text)
    index = index_from_value(value, variable_name=name)
    logger.debug(
        f"Parsed search index '{index.variable_name}' with {len(index.records)} records "
        f"(wrapped={index.wrapped})"
    )
    return index


def render_records(records: List[SearchRecord]) -> str:
    payload = [record.model_dump() for record in records]
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def render_search_index(index: SearchIndex) -> str:
    """
    Render an index as script text in the layout a documentation site expects.
    """
    array = render_records(index.records)
    if index.wrapped:
        return f'var {index.variable_name} = {{"docs":\n{array}\n}}\n'
    return f"var {index.variable_name} = {array};\n"


def load_search_index(path: Path) -> SearchIndex:
    if not path.exists():
        logger.error(f"Search index not found: {path}")
        raise FileNotFoundError(f"Search index not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SearchIndexFormatError(f"{path} is not valid UTF-8: {e}") from e
    return parse_search_index(text)


def dump_search_index(index: SearchIndex, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps "\n" line endings on every platform.
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(render_search_index(index))
