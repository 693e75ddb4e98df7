"""Doc relevance engine — FastAPI application entry point.

Exposes the ``find_relevant_doc_pages`` tool over HTTP:
  GET    /health            provider configuration and cache counters
  GET    /api/tools         tool definitions
  POST   /api/tools/call    invoke a tool
  DELETE /api/cache         drop every cached discovery result
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from doc_relevance.config import Settings, settings
from doc_relevance.integrations.firecrawl import FirecrawlClient
from doc_relevance.orchestrator.lookup import FIND_RELEVANT_DOC_PAGES_TOOL, LookupOrchestrator
from doc_relevance.orchestrator.schemas import ToolCallRequest, ToolResult
from doc_relevance.pipelines.discovery import PageDiscoverer
from doc_relevance.pipelines.relevance_filter import RelevanceFilter
from doc_relevance.services.cache import DiskCache
from doc_relevance.services.llm_client import LLMClient

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("doc_relevance")


def build_orchestrator(config: Settings) -> LookupOrchestrator:
    """Wire the cache and both collaborators from configuration."""
    cache = DiskCache(config.cache_dir, ttl_seconds=config.cache_ttl_seconds)
    firecrawl = FirecrawlClient(
        api_key=config.firecrawl_api_key,
        base_url=config.firecrawl_api_url,
        poll_interval=config.discovery_poll_interval_seconds,
        max_wait_seconds=config.discovery_timeout_seconds,
    )
    return LookupOrchestrator(
        cache=cache,
        discoverer=PageDiscoverer(firecrawl),
        relevance_filter=RelevanceFilter(LLMClient(config)),
    )


def create_app(orchestrator: LookupOrchestrator | None = None, config: Settings = settings) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Doc relevance engine starting | firecrawl=%s | anthropic=%s | cache=%s",
            config.has_firecrawl_key, config.has_anthropic_key, app.state.orchestrator.cache.cache_dir,
        )
        if not config.has_firecrawl_key:
            logger.warning("FIRECRAWL_API_KEY is not set — discovery calls will fail")
        if not config.has_anthropic_key:
            logger.warning("ANTHROPIC_API_KEY is not set — relevance filtering will fail")

        removed = await app.state.orchestrator.cache.purge_expired()
        logger.info("Cache: %d expired entr%s removed", removed, "y" if removed == 1 else "ies")

        yield

        logger.info("Doc relevance engine shutting down")

    app = FastAPI(
        title="Doc Relevance Engine",
        description="Discovers documentation pages and filters them by relevance to a query",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator or build_orchestrator(config)

    # ═══════════════ ENDPOINTS ═══════════════

    @app.get("/health")
    async def health(request: Request):
        cache = request.app.state.orchestrator.cache
        return {
            "status": "ok",
            "has_firecrawl": config.has_firecrawl_key,
            "has_anthropic": config.has_anthropic_key,
            "cache": dict(cache.stats),
        }

    @app.get("/api/tools")
    async def list_tools():
        return {"tools": [FIND_RELEVANT_DOC_PAGES_TOOL]}

    @app.post("/api/tools/call")
    async def call_tool(request: Request):
        try:
            body = await request.json()
            call = ToolCallRequest.model_validate(body)
        except (ValueError, ValidationError):
            return JSONResponse(
                status_code=400,
                content=ToolResult.error("Invalid request body: expected {name, arguments}.").model_dump(),
            )

        result = await request.app.state.orchestrator.handle_tool_call(call.name, call.arguments)
        return JSONResponse(content=result.model_dump(exclude_none=True))

    @app.delete("/api/cache")
    async def clear_cache(request: Request):
        await request.app.state.orchestrator.cache.clear()
        return {"status": "cleared"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("doc_relevance.main:app", host=settings.host, port=settings.port)
