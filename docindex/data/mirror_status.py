"""
Track mirror download status and metadata.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class MirrorStatus(BaseModel):
    """Status information for one mirror source."""
    last_pulled: Optional[datetime] = Field(default=None, description="When the mirror was last refreshed successfully")
    versions: List[str] = Field(default_factory=list, description="Versions imported during the last refresh")
    last_error: Optional[str] = Field(default=None, description="Error message of the last failed pull, if any")


class MirrorStatusFile(BaseModel):
    sources: Dict[str, MirrorStatus] = Field(default_factory=dict)


class MirrorStatusStore:
    """Manages storage of mirror status."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.status_file = self.data_dir / "cache" / "mirror_status.json"
        self._status: Optional[MirrorStatusFile] = None
        self._load()

    def _load(self):
        """Load mirror status from disk."""
        if self.status_file.exists():
            try:
                data = json.loads(self.status_file.read_text(encoding="utf-8"))
                self._status = MirrorStatusFile(**data)
            except Exception as e:
                logger.warning(f"Resetting unreadable mirror status file: {e}")
                self._status = MirrorStatusFile()
        else:
            self._status = MirrorStatusFile()
            self._save()

    def _save(self):
        """Save mirror status to disk."""
        self.status_file.parent.mkdir(parents=True, exist_ok=True)
        self.status_file.write_text(
            self._status.model_dump_json(indent=2, exclude_none=True),
            encoding="utf-8"
        )

    def get_status(self, name: str) -> MirrorStatus:
        """Get the status of one mirror (empty status if never pulled)."""
        if self._status is None:
            self._load()
        return self._status.sources.get(name) or MirrorStatus()

    def get_all(self) -> Dict[str, MirrorStatus]:
        if self._status is None:
            self._load()
        return dict(self._status.sources)

    def start_refresh(self, name: str):
        """Forget the versions recorded by the previous refresh of a mirror."""
        status = self._status.sources.setdefault(name, MirrorStatus())
        status.versions = []
        self._save()

    def update_pulled(self, name: str, version: str):
        """Record a successful pull of one version."""
        status = self._status.sources.setdefault(name, MirrorStatus())
        status.last_pulled = datetime.utcnow()
        if version not in status.versions:
            status.versions.append(version)
        status.last_error = None
        self._save()

    def record_error(self, name: str, message: str):
        status = self._status.sources.setdefault(name, MirrorStatus())
        status.last_error = message
        self._save()
