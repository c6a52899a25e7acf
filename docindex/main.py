import asyncio
import logging
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from docindex.core.dependencies import get_site
from docindex.data.catalog_refresh import initialize_catalog
from docindex.data.mirror_updater import daily_update_loop
from docindex.domain.entities import DocumentationSite

# Configure logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent


app = FastAPI(
    title="Documentation Search Index Service",
    version="0.1.0",
    description="Stores, validates, mirrors and searches versioned client-side documentation search indexes.",
)


# Static files (CSS)
app.mount("/static", StaticFiles(directory=str(_PACKAGE_DIR / "static")), name="static")

# HTML templates (Jinja2)
templates = Jinja2Templates(directory=str(_PACKAGE_DIR / "templates"))


@app.on_event("startup")
async def startup_event() -> None:
    """
    Load site.json, build the in-memory catalog and start background tasks.
    """
    await initialize_catalog()

    # Mirrored indexes are refreshed daily at 06:00 local time.
    asyncio.create_task(daily_update_loop(run_hour=6, run_minute=0))


@app.get("/", response_class=HTMLResponse)
async def index(request: Request, site: DocumentationSite = Depends(get_site)) -> HTMLResponse:
    """
    Landing page listing the stored versions.
    """
    config = site.db.get_site_config()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": config.site_name,
            "description": config.description,
            "versions": site.list_versions(),
            "default_version": site.default_version(),
        },
    )


@app.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


# Search index routes (defined in docindex/api/search.py)
try:
    from docindex.api.search import router as search_router

    app.include_router(search_router, tags=["search"])
    logger.info("Successfully loaded search router")
except ImportError as e:
    logger.warning(f"Failed to import search router: {e}")
except Exception as e:
    logger.error(f"Error loading search router: {e}", exc_info=True)

# Admin routes (uploads, deletion, validation, mirrors)
try:
    from docindex.api.admin import router as admin_router

    app.include_router(admin_router, tags=["admin"])
    logger.info("Successfully loaded admin router")
except ImportError as e:
    logger.warning(f"Failed to import admin router: {e}")
except Exception as e:
    logger.error(f"Error loading admin router: {e}", exc_info=True)


if __name__ == "__main__":
    """
    Allow running `python docindex/main.py` to start the Uvicorn development server.
    """
    import uvicorn

    uvicorn.run(
        "docindex.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
