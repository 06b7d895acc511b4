import logging
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feedlens.main.config import Settings, load_settings
from feedlens.main.errors import FeedError
from feedlens.main.tools.pipeline import FeedPipeline, clean_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Feed"])
system_router = APIRouter(tags=["System"])


def get_pipeline(request: Request) -> FeedPipeline:
    return FeedPipeline(request.app.state.settings)


async def feed_error_handler(request: Request, exc: FeedError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@router.get(
    "/feed",
    summary="Fetch and parse an RSS or Atom feed",
    description=(
        "Proxies a remote RSS/Atom feed URL, parses the XML, and returns a normalised "
        "JSON array of articles. If the URL serves an HTML page, the first feed it "
        "declares is fetched instead. Errors: 400 missing/invalid ``url``, 422 no feed "
        "found, 502 upstream non-OK status, 504 upstream timeout."
    ),
)
async def get_feed(url: Optional[str] = None, pipeline: FeedPipeline = Depends(get_pipeline)) -> dict:
    target = clean_url(url, "feed URL")
    result = await pipeline.fetch_feed(target)
    return result.to_dict()


@router.get(
    "/discover",
    summary="Discover RSS/Atom feeds on a website",
    description=(
        "Fetches the HTML of the given page and extracts the feed links it declares via "
        "``<link rel=\"alternate\">``. If none are found, common feed paths such as "
        "``/feed`` and ``/rss.xml`` are probed. ``feeds`` may be empty."
    ),
)
async def discover_feeds(url: Optional[str] = None, pipeline: FeedPipeline = Depends(get_pipeline)) -> dict:
    target = clean_url(url, "website URL")
    result = await pipeline.discover(target)
    return result.to_dict()


@system_router.get("/health", summary="Health check")
async def health() -> dict:
    return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")}


def create_app(app_settings: Settings) -> FastAPI:
    """Build the API with the CORS allowlist and timeouts from *app_settings*."""
    application = FastAPI(
        title="Feedlens API",
        description="Fetch RSS/Atom feeds as normalised JSON and discover feeds declared by websites.",
        version="1.0.0",
        docs_url="/docs",        # Swagger UI
        redoc_url="/redoc",      # ReDoc UI
        openapi_url="/docs/spec.json",
    )
    application.state.settings = app_settings
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(app_settings.cors_allowlist),
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    application.add_exception_handler(FeedError, feed_error_handler)
    application.include_router(router, prefix="/api")
    application.include_router(router)
    application.include_router(system_router)
    return application


settings = load_settings()
app = create_app(settings)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if not settings.cors_allowlist:
        logger.warning("CORS_ALLOWLIST is empty - all cross-origin requests will be blocked!")
    else:
        logger.info("CORS allowlist: %s", ", ".join(settings.cors_allowlist))
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
