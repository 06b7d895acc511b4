"""FastMCP server exposing the feed tools.

Available tools:
* ``fetch_feed(url: str) -> dict`` – fetch an RSS/Atom feed (or the first feed an
  HTML page declares) as normalised articles.
* ``discover_feeds(url: str) -> dict`` – list the feeds a website declares or
  serves on common paths.

Failures are returned as ``{"error": message}`` instead of raising.
"""

import logging

from fastmcp import FastMCP

from feedlens.main.config import load_settings
from feedlens.main.errors import FeedError
from feedlens.main.tools.pipeline import FeedPipeline, clean_url

logger = logging.getLogger(__name__)

mcp = FastMCP("feedlens")
pipeline = FeedPipeline(load_settings())


async def run_fetch_feed(url: str, feed_pipeline: FeedPipeline = pipeline) -> dict:
    try:
        result = await feed_pipeline.fetch_feed(clean_url(url, "feed URL"))
    except FeedError as exc:
        return {"error": exc.message}
    return result.to_dict()


async def run_discover_feeds(url: str, feed_pipeline: FeedPipeline = pipeline) -> dict:
    try:
        result = await feed_pipeline.discover(clean_url(url, "website URL"))
    except FeedError as exc:
        return {"error": exc.message}
    return result.to_dict()


@mcp.tool
async def fetch_feed(url: str) -> dict:
    """Fetch an RSS/Atom feed and return its articles as normalised JSON."""
    return await run_fetch_feed(url)


@mcp.tool
async def discover_feeds(url: str) -> dict:
    """Discover the RSS/Atom feeds available for a website."""
    return await run_discover_feeds(url)


def main() -> None:
    """Entry point – start the FastMCP server on stdio transport."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info("Feedlens FastMCP server starting (stdio transport)")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
