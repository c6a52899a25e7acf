from typing import List, Optional
import logging

from docindex.storage.db_manager import IndexStorage
from docindex.storage.script_codec import parse_search_index
from docindex.domain.models import (
    IndexVersion,
    SearchHit,
    SearchIndex,
    SearchRecord,
    SearchRequest,
    ValidationReport,
    VersionEntry,
)
from docindex.services.search import search
from docindex.services.validation import validate_script

logger = logging.getLogger(__name__)

# Named aliases Documenter deploys next to the numbered versions.
_ALIAS_ORDER = {"stable": 0, "dev": 1}


def version_key(v: str) -> tuple:
    """
    Convert a version string into a sortable tuple.

    "v2.10.0" sorts after "v2.9.1"; non-numeric parts sort after numeric ones.
    """
    v_str = str(v) if v is not None else ""
    if v_str.startswith("v"):
        v_str = v_str[1:]
    parts = []
    for part in v_str.replace("-", ".").split("."):
        try:
            parts.append((0, int(part)))
        except ValueError:
            parts.append((1, part))
    return tuple(parts)


def sort_versions(versions: List[str]) -> List[str]:
    """Aliases first (stable, dev, ...), then numbered versions newest first."""
    aliases = sorted((v for v in versions if not any(ch.isdigit() for ch in v)),
                     key=lambda v: (_ALIAS_ORDER.get(v, len(_ALIAS_ORDER)), v))
    numbered = sorted((v for v in versions if any(ch.isdigit() for ch in v)),
                      key=version_key, reverse=True)
    return aliases + numbered


class DocumentVersion:
    def __init__(self, entry: VersionEntry, db: IndexStorage):
        self.entry = entry
        self.metadata = entry.metadata
        self.index = entry.index
        self.db = db

    @property
    def version(self) -> str:
        return self.metadata.version

    def records(self, category: Optional[str] = None, offset: int = 0, limit: Optional[int] = None) -> List[SearchRecord]:
        selected = [r for r in self.index.records if category is None or r.category == category]
        end = None if limit is None else offset + limit
        return selected[offset:end]

    def search(self, request: SearchRequest) -> List[SearchHit]:
        config = self.db.get_site_config()
        return search(self.index, request, max_results=config.max_results)

    def get_script_path(self):
        return self.db.get_index_path(self.version)


class DocumentationSite:
    def __init__(self, db: IndexStorage):
        self.db = db

    def get_version(self, version: str) -> Optional[DocumentVersion]:
        entry = self.db.get_version(version)
        if entry:
            return DocumentVersion(entry, self.db)
        return None

    def list_versions(self) -> List[IndexVersion]:
        by_name = {m.version: m for m in self.db.get_all_versions()}
        return [by_name[name] for name in sort_versions(list(by_name))]

    def default_version(self) -> Optional[str]:
        config = self.db.get_site_config()
        if config.default_version and self.db.get_version(config.default_version):
            return config.default_version
        versions = self.list_versions()
        return versions[0].version if versions else None

    def validate_and_store(self, version: str, text: str, source: str = "local") -> tuple:
        """
        Validate script text and store it when it has no errors.

        Returns:
            (report, metadata); metadata is None when the report has errors.
        """
        config = self.db.get_site_config()
        report: ValidationReport = validate_script(text, config.known_categories)
        if not report.ok:
            logger.info(f"Rejected upload for {version}: {len(report.errors)} validation errors")
            return report, None

        index: SearchIndex = parse_search_index(text)
        metadata = self.db.save_version(version, index, source=source)
        return report, metadata
