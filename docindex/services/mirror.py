"""
Mirror search indexes from published documentation sites.

This service handles:
- Discovering the versions a site publishes (versions.js)
- Downloading <base_url>/<version>/search_index.js into the local cache
- Importing downloaded indexes into the versioned store
- Tracking per-mirror pull status
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

import aiofiles
import httpx

from docindex.data.mirror_status import MirrorStatusStore
from docindex.domain.models import IndexVersion, MirrorSource, SearchIndex
from docindex.storage.db_manager import IndexStorage
from docindex.storage.json_db_manager import check_version_name
from docindex.storage.script_codec import (
    SearchIndexFormatError,
    parse_script_value,
    parse_search_index,
    render_search_index,
)

logger = logging.getLogger(__name__)

INDEX_FILENAME = "search_index.js"
VERSIONS_FILENAME = "versions.js"
DOWNLOAD_ATTEMPTS = 3


class MirrorService:
    """
    Downloads published search indexes and stores them as local versions.
    """

    def __init__(
        self,
        db: IndexStorage,
        data_dir: Path,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_delay: float = 1.0,
    ):
        self.db = db
        self.cache_dir = data_dir / "cache"
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.status_store = MirrorStatusStore(data_dir)
        self._transport = transport
        self._retry_delay = retry_delay

    def _client(self, timeout: float = 60.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(follow_redirects=True, timeout=timeout, transport=self._transport)

    # ========================================================================
    # Version discovery
    # ========================================================================

    async def discover_versions(self, source: MirrorSource) -> List[str]:
        """
        Return the versions to mirror for a source.

        Configured versions win; otherwise versions.js is read, and if that
        is unavailable the site is assumed to publish only "stable".
        """
        if source.versions:
            return list(source.versions)

        url = f"{source.base_url.rstrip('/')}/{VERSIONS_FILENAME}"
        logger.debug(f"Discovering versions from {url}")
        try:
            async with self._client(timeout=30.0) as client:
                response = await client.get(url)
                response.raise_for_status()
            _, value = parse_script_value(response.text, lenient=True)
        except (httpx.HTTPError, SearchIndexFormatError) as e:
            logger.warning(f"Could not read {url}, falling back to 'stable': {e}")
            return ["stable"]

        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            logger.warning(f"Unexpected versions.js payload at {url}, falling back to 'stable'")
            return ["stable"]
        return value or ["stable"]

    # ========================================================================
    # Download and import
    # ========================================================================

    async def download_index(self, source: MirrorSource, version: str) -> Path:
        """
        Download one search_index.js into <cache>/<mirror>/<version>/.

        Returns:
            Path to the downloaded file
        """
        version = check_version_name(version)
        url = f"{source.base_url.rstrip('/')}/{version}/{INDEX_FILENAME}"
        target_dir = self.cache_dir / source.name / version
        target_dir.mkdir(parents=True, exist_ok=True)
        target_path = target_dir / INDEX_FILENAME
        tmp_path = target_dir / f"{INDEX_FILENAME}.tmp"

        # Basic retry loop for flaky connections.
        for attempt in range(1, DOWNLOAD_ATTEMPTS + 1):
            try:
                if tmp_path.exists():
                    tmp_path.unlink()
                async with self._client() as client:
                    async with client.stream("GET", url) as response:
                        response.raise_for_status()
                        downloaded = 0
                        async with aiofiles.open(tmp_path, "wb") as f:
                            async for chunk in response.aiter_bytes():
                                await f.write(chunk)
                                downloaded += len(chunk)
                logger.debug(f"Downloaded {downloaded} bytes from {url}")
                break
            except httpx.HTTPError as e:
                tmp_path.unlink(missing_ok=True)
                if attempt < DOWNLOAD_ATTEMPTS:
                    logger.warning(f"Download of {url} failed (attempt {attempt}/{DOWNLOAD_ATTEMPTS}): {e}. Retrying...")
                    await asyncio.sleep(self._retry_delay * attempt)
                else:
                    logger.error(f"Giving up on {url} after {DOWNLOAD_ATTEMPTS} attempts: {e}")
                    raise ValueError(f"Failed to download {url}: {e}") from e

        tmp_path.replace(target_path)
        return target_path

    async def fetch_index(self, source: MirrorSource, version: str) -> SearchIndex:
        path = await self.download_index(source, version)
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            text = await f.read()
        return parse_search_index(text)

    async def import_version(self, source: MirrorSource, version: str) -> Optional[IndexVersion]:
        """
        Download a version and store it.

        Returns:
            The stored metadata, or None when the stored copy is already identical.
        """
        index = await self.fetch_index(source, version)

        digest = hashlib.sha256(render_search_index(index).encode("utf-8")).hexdigest()
        existing = self.db.get_version(version)
        if existing and existing.metadata.sha256 == digest:
            logger.info(f"{source.name}/{version} is unchanged, skipping")
            self.status_store.update_pulled(source.name, version)
            return None
        if existing and existing.metadata.source != source.name:
            logger.warning(
                f"{source.name}/{version} replaces version {version} previously stored from '{existing.metadata.source}'"
            )

        metadata = self.db.save_version(version, index, source=source.name)
        self.status_store.update_pulled(source.name, version)
        return metadata

    async def refresh_source(self, source: MirrorSource) -> List[IndexVersion]:
        """
        Import every version of a source; failures are logged per version.

        Returns:
            Metadata of the versions that changed
        """
        changed: List[IndexVersion] = []
        versions = await self.discover_versions(source)
        self.status_store.start_refresh(source.name)
        for version in versions:
            try:
                metadata = await self.import_version(source, version)
            except (ValueError, OSError) as e:
                logger.error(f"Failed to mirror {source.name}/{version}: {e}")
                self.status_store.record_error(source.name, f"{version}: {e}")
                continue
            if metadata is not None:
                changed.append(metadata)
        return changed


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python -m docindex.services.mirror <base_url> <version> [output.js]")
        sys.exit(2)

    from docindex.storage.script_codec import dump_search_index

    base_url, version = sys.argv[1], sys.argv[2]
    output = Path(sys.argv[3]) if len(sys.argv) > 3 else Path(INDEX_FILENAME)

    async def _download() -> SearchIndex:
        url = f"{base_url.rstrip('/')}/{version}/{INDEX_FILENAME}"
        print(f"Downloading {url}...")
        async with httpx.AsyncClient(follow_redirects=True, timeout=60.0) as client:
            response = await client.get(url)
            response.raise_for_status()
        return parse_search_index(response.text)

    try:
        fetched = asyncio.run(_download())
    except (httpx.HTTPError, ValueError) as e:
        print(f"\nError: {e}")
        sys.exit(1)

    dump_search_index(fetched, output)
    print(f"Success! {len(fetched.records)} records written to {output}")
