"""
Check search index payloads against the contract the search widget relies on.

Unlike the parser, validation never stops at the first problem: it walks
the whole payload and collects every issue into a ValidationReport.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Iterable, List, Optional

from docindex.domain.models import (
    RECORD_FIELDS,
    SiteConfig,
    ValidationIssue,
    ValidationReport,
)
from docindex.storage.script_codec import SearchIndexFormatError, parse_script_value

logger = logging.getLogger(__name__)

# Categories whose entries are anchors inside a page rather than the page itself.
_ANCHORED_CATEGORIES = {"section", "type", "method", "function", "module", "constant", "macro",
                        "abstract type", "primitive type"}


def _default_categories() -> List[str]:
    return SiteConfig.model_fields["known_categories"].default_factory()


def _is_anchored(location: str) -> bool:
    return location.startswith("#") or "/#" in location


def validate_payload(value: Any, known_categories: Optional[Iterable[str]] = None) -> ValidationReport:
    """
    Validate decoded JSON: an array of records or a {"docs": [...]} wrapper.
    """
    categories = set(known_categories if known_categories is not None else _default_categories())
    report = ValidationReport()

    if isinstance(value, list):
        records = value
    elif isinstance(value, dict) and isinstance(value.get("docs"), list):
        records = value["docs"]
    else:
        report.issues.append(ValidationIssue(
            severity="error",
            message="Top-level value must be an array of records or an object with a 'docs' array",
        ))
        return report

    report.record_count = len(records)

    for position, raw in enumerate(records):
        if not isinstance(raw, dict):
            report.issues.append(ValidationIssue(
                severity="error",
                position=position,
                message=f"Record is not an object (got {type(raw).__name__})",
            ))
            continue

        field_errors = False
        for field in RECORD_FIELDS:
            if field not in raw:
                report.issues.append(ValidationIssue(
                    severity="error", position=position, field=field,
                    message=f"Missing required field '{field}'",
                ))
                field_errors = True
            elif not isinstance(raw[field], str):
                report.issues.append(ValidationIssue(
                    severity="error", position=position, field=field,
                    message=f"Field '{field}' must be a string (got {type(raw[field]).__name__})",
                ))
                field_errors = True

        if field_errors:
            continue

        category = raw["category"]
        if category not in categories:
            report.issues.append(ValidationIssue(
                severity="warning", position=position, field="category",
                message=f"Unknown category '{category}'",
            ))
        if not raw["title"].strip():
            report.issues.append(ValidationIssue(
                severity="warning", position=position, field="title",
                message="Title is empty",
            ))
        if category in _ANCHORED_CATEGORIES and not _is_anchored(raw["location"]):
            report.issues.append(ValidationIssue(
                severity="warning", position=position, field="location",
                message=f"Location '{raw['location']}' of a '{category}' record has no anchor",
            ))

    logger.debug(
        f"Validated {report.record_count} records: "
        f"{len(report.errors)} errors, {len(report.warnings)} warnings"
    )
    return report


def validate_script(text: str, known_categories: Optional[Iterable[str]] = None) -> ValidationReport:
    """
    Validate the text of a search_index.js file.

    Text that cannot be decoded at all yields a report with a single top-level error.
    """
    try:
        _, value = parse_script_value(text)
    except SearchIndexFormatError as e:
        return ValidationReport(issues=[ValidationIssue(severity="error", message=str(e))])
    return validate_payload(value, known_categories)


def format_report(report: ValidationReport) -> str:
    lines = []
    for issue in report.issues:
        where = "payload" if issue.position is None else f"record {issue.position}"
        if issue.field:
            where += f".{issue.field}"
        lines.append(f"{issue.severity.upper():7} {where}: {issue.message}")
    lines.append(
        f"{report.record_count} records, {len(report.errors)} errors, {len(report.warnings)} warnings"
    )
    return "\n".join(lines)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m docindex.services.validation <search_index.js>")
        sys.exit(2)

    path = Path(sys.argv[1])
    result = validate_script(path.read_text(encoding="utf-8"))
    print(format_report(result))
    sys.exit(0 if result.ok else 1)
