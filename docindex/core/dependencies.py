from pathlib import Path
from typing import Optional
import os

from docindex.storage.db_manager import IndexStorage
from docindex.storage.json_db_manager import JsonIndexStorage
from docindex.domain.entities import DocumentationSite
from docindex.services.mirror import MirrorService

DATA_ROOT_ENV_VAR = "DOCINDEX_DATA_DIR"
_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"

_db_manager: Optional[IndexStorage] = None
_site: Optional[DocumentationSite] = None
_mirror_service: Optional[MirrorService] = None

def get_data_dir() -> Path:
    """
    Determine the data directory path.

    Priority:
    1. Environment variable DOCINDEX_DATA_DIR
    2. '<repo root>/data'
    """
    env_path = os.environ.get(DATA_ROOT_ENV_VAR)
    if env_path:
        d = Path(env_path).expanduser()
    else:
        d = _DEFAULT_DATA_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d

def get_db_manager() -> IndexStorage:
    global _db_manager
    if _db_manager is None:
        _db_manager = JsonIndexStorage(get_data_dir())
        _db_manager.initialize()
    return _db_manager

def get_site() -> DocumentationSite:
    global _site
    if _site is None:
        _site = DocumentationSite(get_db_manager())
    return _site

def get_mirror_service() -> MirrorService:
    global _mirror_service
    if _mirror_service is None:
        _mirror_service = MirrorService(get_db_manager(), get_data_dir())
    return _mirror_service

def reset_dependencies() -> None:
    """Drop the cached singletons so the next call re-reads DOCINDEX_DATA_DIR."""
    global _db_manager, _site, _mirror_service
    _db_manager = None
    _site = None
    _mirror_service = None
