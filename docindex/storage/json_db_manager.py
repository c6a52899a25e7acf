import hashlib
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from docindex.storage.db_manager import IndexStorage
from docindex.storage.script_codec import (
    SearchIndexFormatError,
    load_search_index,
    render_search_index,
)
from docindex.domain.models import (
    Catalog,
    IndexVersion,
    SearchIndex,
    SiteConfig,
    VersionEntry,
)

logger = logging.getLogger(__name__)

INDEX_FILENAME = "search_index.js"
METADATA_FILENAME = "version.json"


def check_version_name(version: str) -> str:
    """
    Version names become directory names, so they must be one plain path segment.
    """
    name = (version or "").strip()
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"Invalid version name: {version!r}")
    return name


class JsonIndexStorage(IndexStorage):
    def __init__(self, data_dir: Path):
        self._data_dir = data_dir
        self._catalog = Catalog()
        self._site_config: Optional[SiteConfig] = None

        # Ensure data directory exists
        if not self._data_dir.exists():
            self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def versions_dir(self) -> Path:
        return self._data_dir / "versions"

    def initialize(self) -> None:
        self._load_site_config()
        self.rebuild_catalog()

    def get_site_config(self) -> SiteConfig:
        if self._site_config is None:
            return self._load_site_config()
        return self._site_config

    def save_site_config(self, config: SiteConfig) -> None:
        self._site_config = config
        config_path = self._data_dir / "site.json"
        config_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")

    def get_catalog(self) -> Catalog:
        return self._catalog

    def get_version(self, version: str) -> Optional[VersionEntry]:
        return self._catalog.versions.get(version)

    def get_all_versions(self) -> List[IndexVersion]:
        return [entry.metadata for entry in self._catalog.versions.values()]

    def save_version(self, version: str, index: SearchIndex, source: str = "local") -> IndexVersion:
        name = check_version_name(version)
        version_dir = self.versions_dir / name
        version_dir.mkdir(parents=True, exist_ok=True)

        rendered = render_search_index(index)
        with (version_dir / INDEX_FILENAME).open("w", encoding="utf-8", newline="") as f:
            f.write(rendered)

        metadata = IndexVersion(
            version=name,
            record_count=len(index.records),
            categories=index.category_counts(),
            source=source,
            sha256=hashlib.sha256(rendered.encode("utf-8")).hexdigest(),
        )
        (version_dir / METADATA_FILENAME).write_text(
            metadata.model_dump_json(indent=2, exclude_none=True), encoding="utf-8"
        )
        metadata.storage_path = str(version_dir.relative_to(self._data_dir))

        # Update in-memory catalog
        self._catalog.versions[name] = VersionEntry(metadata=metadata, index=index)
        logger.info(f"Stored version {name} ({metadata.record_count} records, source={source})")
        return metadata

    def delete_version(self, version: str) -> None:
        entry = self.get_version(version)
        if not entry:
            raise ValueError(f"Version {version} not found")

        if entry.metadata.storage_path:
            version_dir = self._data_dir / entry.metadata.storage_path
            if version_dir.exists():
                shutil.rmtree(version_dir)

        del self._catalog.versions[version]
        logger.info(f"Deleted version {version}")

    def get_index_path(self, version: str) -> Path:
        entry = self.get_version(version)
        if not entry or not entry.metadata.storage_path:
            raise ValueError(f"Version {version} not found")
        return self._data_dir / entry.metadata.storage_path / INDEX_FILENAME

    def _load_site_config(self) -> SiteConfig:
        path = self._data_dir / "site.json"
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                config = SiteConfig(**raw)
            except Exception as e:
                logger.warning(f"Could not read {path}, falling back to defaults: {e}")
                config = SiteConfig()
        else:
            config = SiteConfig()

        # Persist with all fields populated (including any new defaults).
        path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        self._site_config = config
        return config

    def rebuild_catalog(self) -> None:
        catalog = Catalog()

        if self.versions_dir.exists():
            for version_dir in sorted(self.versions_dir.iterdir()):
                if not version_dir.is_dir():
                    continue

                index_path = version_dir / INDEX_FILENAME
                if not index_path.exists():
                    continue

                try:
                    index = load_search_index(index_path)
                except (SearchIndexFormatError, OSError) as e:
                    logger.warning(f"Skipping {index_path}: {e}")
                    continue

                metadata = self._read_metadata(version_dir, index)
                metadata.storage_path = str(version_dir.relative_to(self._data_dir))
                catalog.versions[metadata.version] = VersionEntry(metadata=metadata, index=index)

        catalog.last_built_at = datetime.utcnow()
        self._catalog = catalog
        logger.debug(f"Catalog rebuilt with {len(catalog.versions)} versions")

    def _read_metadata(self, version_dir: Path, index: SearchIndex) -> IndexVersion:
        """
        Load version.json; the index itself is authoritative for counts and hash.
        """
        metadata_path = version_dir / METADATA_FILENAME
        raw = {}
        if metadata_path.exists():
            try:
                raw = json.loads(metadata_path.read_text(encoding="utf-8"))
            except Exception as e:
                logger.warning(f"Ignoring unreadable {metadata_path}: {e}")
                raw = {}

        content = (version_dir / INDEX_FILENAME).read_bytes()
        raw["version"] = version_dir.name
        raw["record_count"] = len(index.records)
        raw["categories"] = index.category_counts()
        raw["sha256"] = hashlib.sha256(content).hexdigest()

        try:
            return IndexVersion(**raw)
        except Exception as e:
            logger.warning(f"Invalid metadata in {metadata_path}: {e}")
            return IndexVersion(
                version=version_dir.name,
                record_count=raw["record_count"],
                categories=raw["categories"],
                sha256=raw["sha256"],
            )
