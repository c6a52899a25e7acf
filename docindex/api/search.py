from __future__ import annotations

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import FileResponse, JSONResponse

from docindex.core.dependencies import get_site
from docindex.domain.entities import DocumentationSite, DocumentVersion
from docindex.domain.models import SearchHit, SearchRequest
from docindex.domain.search_utils import strip_nulls

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_version_or_404(site: DocumentationSite, version: str) -> DocumentVersion:
    doc_version = site.get_version(version)
    if not doc_version:
        raise HTTPException(status_code=404, detail="Version not found")
    return doc_version


def _hits_response(version: str, hits: List[SearchHit]) -> Response:
    if not hits:
        # 204 No Content when there are no results.
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "Version": version,
            "Data": strip_nulls([hit.model_dump(mode="json") for hit in hits]),
        },
    )


def _run_search(doc_version: DocumentVersion, body: SearchRequest) -> List[SearchHit]:
    try:
        return doc_version.search(body)
    except ValueError as e:
        # Unsupported match types surface here.
        raise HTTPException(status_code=422, detail=str(e))


# ---------------------------------------------------------------------------
# 1. GET /versions
# ---------------------------------------------------------------------------

@router.get("/versions")
async def list_versions(site: DocumentationSite = Depends(get_site)) -> dict:
    """
    Metadata of every stored index, aliases first, then newest version first.
    """
    return {
        "Data": [m.model_dump(mode="json") for m in site.list_versions()],
        "DefaultVersion": site.default_version(),
    }


@router.get("/versions/{version}")
async def get_version(version: str, site: DocumentationSite = Depends(get_site)) -> dict:
    doc_version = _get_version_or_404(site, version)
    return {"Data": doc_version.metadata.model_dump(mode="json")}


# ---------------------------------------------------------------------------
# 2. GET /versions/{version}/search_index.js
# ---------------------------------------------------------------------------

@router.get("/versions/{version}/search_index.js")
async def get_search_index_script(version: str, site: DocumentationSite = Depends(get_site)) -> FileResponse:
    """
    Serve the rendered script exactly as a documentation site would load it.
    """
    doc_version = _get_version_or_404(site, version)
    try:
        path = doc_version.get_script_path()
    except ValueError:
        raise HTTPException(status_code=500, detail="Storage path not available")

    if not path.is_file():
        raise HTTPException(status_code=404, detail="Search index file not found on disk")

    return FileResponse(
        path=str(path),
        media_type="application/javascript",
        filename="search_index.js",
    )


# ---------------------------------------------------------------------------
# 3. GET /versions/{version}/records
# ---------------------------------------------------------------------------

@router.get("/versions/{version}/records")
async def get_records(
    version: str,
    category: Optional[str] = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    site: DocumentationSite = Depends(get_site),
) -> dict:
    doc_version = _get_version_or_404(site, version)
    records = doc_version.records(category=category, offset=offset, limit=limit)
    return {
        "Data": [r.model_dump() for r in records],
        "Offset": offset,
        "Total": doc_version.metadata.record_count if category is None
        else doc_version.metadata.categories.get(category, 0),
    }


# ---------------------------------------------------------------------------
# 4. GET / POST /versions/{version}/search
# ---------------------------------------------------------------------------

@router.get("/versions/{version}/search")
async def search_get(
    version: str,
    q: str = Query(default=""),
    category: Optional[List[str]] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1),
    site: DocumentationSite = Depends(get_site),
) -> Response:
    doc_version = _get_version_or_404(site, version)
    body = SearchRequest(query=q, categories=category or [], max_results=limit)
    return _hits_response(version, _run_search(doc_version, body))


@router.post("/versions/{version}/search")
async def search_post(
    version: str,
    body: SearchRequest,
    site: DocumentationSite = Depends(get_site),
) -> Response:
    doc_version = _get_version_or_404(site, version)
    return _hits_response(version, _run_search(doc_version, body))
