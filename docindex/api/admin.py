"""
Admin API endpoints for managing stored search indexes.

This module provides the administrative interface for:
- Uploading (creating or replacing) the search index of a version
- Building a version from a YAML page manifest
- Deleting versions
- Validating a search_index.js without storing it
- Refreshing mirrored documentation sites
- Rebuilding the in-memory catalog from disk
"""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from fastapi.responses import JSONResponse

from docindex.core.dependencies import get_mirror_service, get_site
from docindex.domain.entities import DocumentationSite
from docindex.domain.models import ValidationReport
from docindex.services.builder import build_from_manifest_data, load_manifest
from docindex.services.mirror import MirrorService
from docindex.services.validation import validate_script

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


async def _read_upload(upload: UploadFile) -> str:
    """
    Read an uploaded script as UTF-8 text.

    Raises:
        HTTPException: 422 if the file is not UTF-8.
    """
    content = await upload.read()
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Uploaded file is not valid UTF-8",
        )


def _report_payload(report: ValidationReport) -> dict:
    return {
        "ok": report.ok,
        "record_count": report.record_count,
        "issues": [issue.model_dump() for issue in report.issues],
    }


@router.put("/versions/{version}")
async def upload_version(
    version: str,
    file: UploadFile = File(...),
    site: DocumentationSite = Depends(get_site),
) -> JSONResponse:
    """
    Create or replace the search index of a version from an uploaded search_index.js.

    Returns 422 with the validation report when the upload has errors.
    """
    text = await _read_upload(file)
    try:
        report, metadata = site.validate_and_store(version, text)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    if metadata is None:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": "Search index failed validation", "report": _report_payload(report)},
        )

    logger.info(f"Uploaded {version}: {metadata.record_count} records")
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"Data": metadata.model_dump(mode="json"), "report": _report_payload(report)},
    )


@router.post("/versions/{version}/build")
async def build_version(
    version: str,
    file: UploadFile = File(...),
    site: DocumentationSite = Depends(get_site),
) -> JSONResponse:
    """
    Build and store a version from an uploaded YAML page manifest.

    The site's variable_name and wrap_docs settings apply unless the
    manifest overrides them.
    """
    text = await _read_upload(file)
    config = site.db.get_site_config()
    try:
        index = build_from_manifest_data(
            load_manifest(text),
            variable_name=config.variable_name,
            wrapped=config.wrap_docs,
        )
        metadata = site.db.save_version(version, index, source="manifest")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    logger.info(f"Built {version} from manifest: {metadata.record_count} records")
    return JSONResponse(status_code=status.HTTP_200_OK, content={"Data": metadata.model_dump(mode="json")})


@router.delete("/versions/{version}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_version(version: str, site: DocumentationSite = Depends(get_site)) -> None:
    if not site.get_version(version):
        raise HTTPException(status_code=404, detail="Version not found")
    site.db.delete_version(version)


@router.post("/validate")
async def validate_upload(
    file: UploadFile = File(...),
    site: DocumentationSite = Depends(get_site),
) -> dict:
    """
    Validate a search_index.js against the record contract without storing it.
    """
    text = await _read_upload(file)
    config = site.db.get_site_config()
    report = validate_script(text, config.known_categories)
    return _report_payload(report)


@router.post("/mirrors/{name}/refresh")
async def refresh_mirror(
    name: str,
    site: DocumentationSite = Depends(get_site),
    mirrors: MirrorService = Depends(get_mirror_service),
) -> dict:
    """
    Re-download every version of a configured mirror now.
    """
    source = site.db.get_site_config().get_mirror(name)
    if source is None:
        raise HTTPException(status_code=404, detail="Mirror not found")

    changed = await mirrors.refresh_source(source)
    status_info = mirrors.status_store.get_status(name)
    return {
        "Changed": [m.version for m in changed],
        "Status": status_info.model_dump(mode="json"),
    }


@router.post("/reload")
async def reload_catalog(site: DocumentationSite = Depends(get_site)) -> dict:
    """
    Rebuild the in-memory catalog from the data directory.
    """
    site.db.rebuild_catalog()
    return {"versions": [m.version for m in site.list_versions()]}
