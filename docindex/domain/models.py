"""
Pydantic models for the documentation search index service.

This module defines all data models used throughout the application, including:
- Search records and the search index they belong to
- Stored index versions and the in-memory catalog
- Site configuration and mirror sources
- Search, filter and validation request/response models

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_VARIABLE_NAME = "documenterSearchIndex"

# The five string fields every record exposes to the search widget.
RECORD_FIELDS = ("location", "page", "title", "text", "category")


# ---------------------------------------------------------------------------
# Search Index Models
# ---------------------------------------------------------------------------


class SearchRecord(BaseModel):
    """
    A single entry of the client-side search index.

    Each record points at one searchable unit of a documentation site: a page
    paragraph, a section heading, or a harvested docstring. Keys beyond the
    five required fields are kept so that round-tripping a generated index
    never loses data.
    """

    model_config = ConfigDict(extra="allow")

    location: str = Field(
        description="Page-relative URL of the entry, e.g. '' or '#FinanceCore.irr' or 'lib/api/#Foo.bar'.",
    )
    page: str = Field(
        description="Title of the page the entry lives on.",
    )
    title: str = Field(
        description="Display name shown in search results (section title or binding name).",
    )
    text: str = Field(
        description="Plain-text excerpt that is matched against queries.",
    )
    category: str = Field(
        description="Category tag such as 'page', 'section', 'type', 'method' or 'function'.",
    )


class SearchIndex(BaseModel):
    """
    The full payload bound to the global script variable.

    `wrapped` distinguishes the Documenter layout (`{"docs": [...]}`) from a
    bare array assignment.
    """

    records: List[SearchRecord] = Field(
        default_factory=list,
        description="Records in the order they appear in the script.",
    )
    variable_name: str = Field(
        default=DEFAULT_VARIABLE_NAME,
        description="Name of the global variable the payload is assigned to.",
    )
    wrapped: bool = Field(
        default=True,
        description="If True the records are emitted inside a {\"docs\": [...]} object.",
    )

    def category_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for record in self.records:
            counts[record.category] = counts.get(record.category, 0) + 1
        return counts


# ---------------------------------------------------------------------------
# Mirror Configuration Models
# ---------------------------------------------------------------------------


class MirrorSource(BaseModel):
    """
    A published documentation site whose search indexes are mirrored locally.

    Versions are fetched from `<base_url>/<version>/search_index.js`. When no
    versions are configured they are discovered from `<base_url>/versions.js`.
    """

    name: str = Field(
        description="Short unique name for the mirror, also used as the cache subdirectory.",
    )
    base_url: str = Field(
        description="Root URL of the documentation site (without trailing slash).",
    )
    versions: List[str] = Field(
        default_factory=list,
        description="Versions to mirror (e.g. ['stable', 'v2.1.1']). Empty list means discover from versions.js.",
    )
    auto_update: bool = Field(
        default=True,
        description="If True, the daily update job refreshes this mirror.",
    )


# ---------------------------------------------------------------------------
# Site Configuration Models
# ---------------------------------------------------------------------------


class SiteConfig(BaseModel):
    """
    Top-level configuration for the search index service.

    Persisted at: <DATA_DIR>/site.json
    """

    site_name: str = Field(
        default="Documentation",
        description="Human-friendly name displayed on the landing page.",
    )
    description: str = Field(
        default="Versioned client-side search indexes served with FastAPI.",
        description="Longer description used on the landing page.",
    )
    refresh_interval_seconds: int = Field(
        default=3600,
        ge=60,
        description="How often (in seconds) the in-memory catalog is rebuilt from disk. Minimum: 60 seconds.",
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Timestamp when this site configuration was first created.",
    )

    # Rendering defaults
    variable_name: str = Field(
        default=DEFAULT_VARIABLE_NAME,
        description="Global variable name used when rendering indexes that do not carry their own.",
    )
    wrap_docs: bool = Field(
        default=True,
        description="Emit new indexes in the {\"docs\": [...]} layout.",
    )

    # Validation and search settings
    known_categories: List[str] = Field(
        default_factory=lambda: [
            "page",
            "section",
            "type",
            "method",
            "function",
            "module",
            "constant",
            "macro",
            "abstract type",
            "primitive type",
        ],
        description="Category tags accepted without a validation warning.",
    )
    default_version: Optional[str] = Field(
        default=None,
        description="Version shown first on the landing page (e.g. 'stable').",
    )
    max_results: int = Field(
        default=50,
        ge=1,
        description="Upper bound on search hits returned when a request does not specify one.",
    )

    mirrors: List[MirrorSource] = Field(
        default_factory=list,
        description="Published documentation sites to mirror.",
    )

    def get_mirror(self, name: str) -> Optional[MirrorSource]:
        for mirror in self.mirrors:
            if mirror.name == name:
                return mirror
        return None


# ---------------------------------------------------------------------------
# Stored Version Models
# ---------------------------------------------------------------------------


class IndexVersion(BaseModel):
    """
    Metadata describing one stored search index.

    Persisted in: <DATA_DIR>/versions/<version>/version.json
    """

    version: str = Field(
        description="Documentation version the index belongs to (e.g. 'v2.1.1', 'stable', 'dev').",
    )
    record_count: int = Field(
        default=0,
        description="Number of records in the index.",
    )
    categories: Dict[str, int] = Field(
        default_factory=dict,
        description="Number of records per category tag.",
    )
    source: str = Field(
        default="local",
        description="'local' for uploaded/built indexes, otherwise the name of the mirror it came from.",
    )
    imported_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Timestamp when the index was stored.",
    )
    sha256: Optional[str] = Field(
        default=None,
        description="SHA256 hash of the rendered search_index.js.",
    )

    # Internal storage path (not persisted to JSON)
    storage_path: Optional[str] = Field(
        default=None,
        exclude=True,
        description="Relative path to this version directory from the data directory. Populated by the loader.",
    )


class VersionEntry(BaseModel):
    """
    In-memory representation of a stored version: its metadata and its records.
    """

    metadata: IndexVersion
    index: SearchIndex


class Catalog(BaseModel):
    """
    In-memory catalog of every stored index, keyed by version.

    Rebuilt from disk periodically according to refresh_interval_seconds.
    """

    versions: Dict[str, VersionEntry] = Field(
        default_factory=dict,
        description="Dictionary mapping version strings to their entries.",
    )
    last_built_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when this catalog was last built from disk.",
    )


# ---------------------------------------------------------------------------
# Search Request Models
# ---------------------------------------------------------------------------


FilterField = Literal["location", "page", "title", "text", "category"]


class FieldFilter(BaseModel):
    """
    Field-specific filter applied to search candidates.

    Records must match ALL filters of a request. The match type determines
    how the keyword is compared (exact, case-insensitive, prefix, substring
    or wildcard).
    """

    field: FilterField = Field(
        description="Record field to match against.",
    )
    keyword: str = Field(
        description="Keyword compared against the field value.",
    )
    match_type: Optional[str] = Field(
        default=None,
        description="One of 'Exact', 'CaseInsensitive', 'StartsWith', 'Substring', 'Wildcard'. Defaults to 'Substring'.",
    )


class SearchRequest(BaseModel):
    """
    Search request against one stored index.

    Search algorithm:
    1. Score records against the free-text query (all terms must match)
    2. Restrict to the requested categories and apply field filters
    3. Deduplicate by (location, title) and order by score
    """

    query: str = Field(
        default="",
        description="Free-text query; terms are matched against titles and text.",
    )
    categories: List[str] = Field(
        default_factory=list,
        description="Restrict results to these categories. Empty list means all.",
    )
    filters: List[FieldFilter] = Field(
        default_factory=list,
        description="Field filters; records must match all of them.",
    )
    max_results: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum number of hits to return. Falls back to the site configuration.",
    )


class SearchHit(BaseModel):
    """A scored search result."""

    record: SearchRecord
    score: float = Field(description="Relevance score; higher is better.")
    position: int = Field(description="Index of the record in the search index.")
    excerpt: str = Field(default="", description="Short text fragment around the first match.")


# ---------------------------------------------------------------------------
# Validation Models
# ---------------------------------------------------------------------------


Severity = Literal["error", "warning"]


class ValidationIssue(BaseModel):
    severity: Severity
    position: Optional[int] = Field(
        default=None,
        description="Index of the offending record, or None for problems with the payload as a whole.",
    )
    field: Optional[str] = None
    message: str


class ValidationReport(BaseModel):
    """
    Outcome of checking a payload against the search widget contract.
    """

    record_count: int = 0
    issues: List[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def ok(self) -> bool:
        return not self.errors
