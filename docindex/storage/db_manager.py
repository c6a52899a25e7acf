from abc import ABC, abstractmethod
from typing import List, Optional
from pathlib import Path
from docindex.domain.models import (
    Catalog,
    IndexVersion,
    SearchIndex,
    SiteConfig,
    VersionEntry,
)

class IndexStorage(ABC):
    """
    Abstract base class for versioned search index storage.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the storage subsystem (e.g. load from disk)."""
        pass

    @abstractmethod
    def get_site_config(self) -> SiteConfig:
        """Retrieve site configuration."""
        pass

    @abstractmethod
    def save_site_config(self, config: SiteConfig) -> None:
        """Save site configuration."""
        pass

    @abstractmethod
    def get_catalog(self) -> Catalog:
        """Get the full in-memory catalog."""
        pass

    @abstractmethod
    def rebuild_catalog(self) -> None:
        """Reload every stored version from the backing store."""
        pass

    @abstractmethod
    def get_version(self, version: str) -> Optional[VersionEntry]:
        """Get a stored index and its metadata by version."""
        pass

    @abstractmethod
    def get_all_versions(self) -> List[IndexVersion]:
        """List metadata of every stored version."""
        pass

    @abstractmethod
    def save_version(self, version: str, index: SearchIndex, source: str = "local") -> IndexVersion:
        """Store (create or replace) the index for a version and return its metadata."""
        pass

    @abstractmethod
    def delete_version(self, version: str) -> None:
        """Delete a stored version and its files."""
        pass

    @abstractmethod
    def get_index_path(self, version: str) -> Path:
        """
        Get the absolute path to the rendered search_index.js of a version.
        Required for serving the script.
        """
        pass
