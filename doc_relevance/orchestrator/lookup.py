"""Lookup orchestrator — fetch-or-discover, then filter, then report.

Responsibilities:
  - Validate tool arguments before touching the cache or collaborators
  - Serve discovered pages from the disk cache, or discover and cache them
  - Filter pages against the query on every call (filter output is never cached)
  - Turn every predictable outcome into a ToolResult with an error flag
"""

import json
import logging
from typing import Any, Protocol

from pydantic import ValidationError

from doc_relevance.orchestrator.schemas import FindRelevantPagesArgs, PageMetadata, ToolResult
from doc_relevance.services.cache import DiskCache

logger = logging.getLogger(__name__)

TOOL_NAME = "find_relevant_doc_pages"
SOURCE_CACHE = "cache (discovered URLs)"
SOURCE_LIVE = "live discovery (discovered URLs)"

FIND_RELEVANT_DOC_PAGES_TOOL: dict[str, Any] = {
    "name": TOOL_NAME,
    "description": (
        "Discovers pages within a given root URL and uses an LLM to filter them based on a query, "
        "returning a list of the most relevant page URLs."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "root_url": {
                "type": "string",
                "format": "uri",
                "description": "The root documentation URL to start discovery from.",
            },
            "query": {
                "type": "string",
                "description": "The user query to find relevant pages for.",
            },
            "max_pages_to_discover": {
                "type": "integer",
                "description": "Maximum number of pages to discover (1-50, default 20).",
                "minimum": 1,
                "maximum": 50,
                "default": 20,
            },
        },
        "required": ["root_url", "query"],
    },
}


class Discoverer(Protocol):
    async def discover(self, root_url: str, limit: int) -> list[PageMetadata] | None: ...


class RelevanceFilterer(Protocol):
    async def filter(self, pages: list[PageMetadata], query: str) -> list[str] | None: ...


class LookupOrchestrator:
    """Composes the cache and the two collaborators into one tool call."""

    def __init__(self, cache: DiskCache, discoverer: Discoverer, relevance_filter: RelevanceFilterer):
        self.cache = cache
        self.discoverer = discoverer
        self.relevance_filter = relevance_filter

    async def handle_tool_call(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        if name != TOOL_NAME:
            return ToolResult.error(f"Unknown tool: {name}")

        try:
            args = FindRelevantPagesArgs.model_validate(arguments or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            logger.error("Invalid arguments for %s | %s", name, problems[:300])
            return ToolResult.error(f"Invalid arguments: {problems}")

        return await self.find_relevant_pages(args)

    async def find_relevant_pages(self, args: FindRelevantPagesArgs) -> ToolResult:
        root_url, query, limit = args.root_url, args.query, args.max_pages_to_discover
        logger.info("Lookup | root=%s | limit=%d | query=%s", root_url, limit, query[:80])

        try:
            cache_key = DiskCache.make_key(root_url, limit)
            pages = await self._cached_pages(cache_key)
            source = SOURCE_CACHE

            if pages is None:
                source = SOURCE_LIVE
                pages = await self.discoverer.discover(root_url, limit)
                if pages is None:
                    logger.warning("Lookup | discovery failed | root=%s", root_url)
                    return ToolResult.error(f"Failed to discover pages from {root_url}")
                if pages:
                    payload = json.dumps([p.model_dump() for p in pages], ensure_ascii=False)
                    await self.cache.set(cache_key, payload)

            if not pages:
                return ToolResult.text(f"No pages found for {root_url} to filter.", source=source)

            relevant_urls = await self.relevance_filter.filter(pages, query)
            if relevant_urls is None:
                logger.warning("Lookup | relevance filter failed | root=%s | query=%s", root_url, query[:80])
                return ToolResult.error(
                    f"LLM processing failed for URL filtering on query: '{query}' for {root_url}"
                )

        except Exception as e:
            logger.error("Lookup failed | root=%s | query=%s | %s", root_url, query[:80], str(e)[:300])
            return ToolResult.error(f"Error processing tool call for {root_url}: {e}")

        logger.info("Lookup complete | root=%s | source=%s | relevant=%d", root_url, source, len(relevant_urls))
        if relevant_urls:
            summary = (
                f"Found {len(relevant_urls)} relevant page(s) for query '{query}' "
                f"under {root_url} (Source: {source}):"
            )
        else:
            summary = (
                f"No specific pages found to be relevant for query '{query}' "
                f"under {root_url} (Source: {source})."
            )
        return ToolResult.text(summary, *relevant_urls, source=source)

    async def _cached_pages(self, cache_key: str) -> list[PageMetadata] | None:
        cached = await self.cache.get(cache_key)
        if cached is None:
            return None
        try:
            return [PageMetadata.model_validate(item) for item in json.loads(cached)]
        except (ValueError, TypeError) as e:
            logger.warning("Cached pages unreadable, rediscovering | key=%s | %s", cache_key[:120], str(e)[:200])
            return None
