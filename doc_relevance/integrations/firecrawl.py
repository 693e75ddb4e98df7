"""Firecrawl REST API integration (crawl jobs).

Docs: https://docs.firecrawl.dev/api-reference/endpoint/crawl-post
Flow: POST /v1/crawl → job id → poll GET /v1/crawl/{id} → follow ``next`` pages.
"""

import asyncio
import logging
import time
from typing import Any

import httpx

from doc_relevance.errors import ConfigurationError, ScraperError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.firecrawl.dev"
MAX_CRAWL_LIMIT = 50
TERMINAL_FAILURES = ("failed", "cancelled")


class FirecrawlClient:
    """Async client for Firecrawl crawl jobs.

    ``crawl`` returns the raw documents, ``None`` when Firecrawl reports an
    error or the job does not finish within ``max_wait_seconds``, and raises
    ``ScraperError`` when the API cannot be reached at all.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 30,
        poll_interval: float = 2.0,
        max_wait_seconds: int = 180,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_wait_seconds = max_wait_seconds

    async def crawl(self, root_url: str, limit: int = 20) -> list[dict[str, Any]] | None:
        """Crawl up to ``limit`` pages under ``root_url``."""
        if not self.api_key:
            logger.error("Firecrawl not configured — FIRECRAWL_API_KEY is not set")
            raise ConfigurationError("Discovery tool not initialized. Check FIRECRAWL_API_KEY.")

        payload = {
            "url": root_url,
            "limit": max(1, min(limit, MAX_CRAWL_LIMIT)),
            "scrapeOptions": {"formats": ["markdown"]},
        }

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=self._headers()) as client:
                resp = await client.post(f"{self.base_url}/v1/crawl", json=payload)
                job = self._parse_response(resp, "crawl start", root_url)
                if job is None:
                    return None

                job_id = job.get("id")
                if not job_id:
                    logger.warning("Firecrawl | crawl start returned no job id | root=%s", root_url)
                    return None

                return await self._wait_for_job(client, str(job_id), root_url, start)

        except httpx.TimeoutException:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("Firecrawl timeout | %dms | root=%s", elapsed_ms, root_url)
            return None
        except httpx.HTTPError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("Firecrawl error | %dms | root=%s | %s", elapsed_ms, root_url, str(e)[:200])
            raise ScraperError(f"Failed to discover URLs from {root_url}: {e}") from e

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _wait_for_job(
        self, client: httpx.AsyncClient, job_id: str, root_url: str, start: float,
    ) -> list[dict[str, Any]] | None:
        status_url = f"{self.base_url}/v1/crawl/{job_id}"
        while True:
            resp = await client.get(status_url)
            body = self._parse_response(resp, "crawl status", root_url)
            if body is None:
                return None

            status = body.get("status")
            if status == "completed":
                return await self._collect_documents(client, body, root_url, start)
            if status in TERMINAL_FAILURES:
                logger.warning("Firecrawl | job %s | status=%s | root=%s", job_id, status, root_url)
                return None

            if time.monotonic() - start >= self.max_wait_seconds:
                logger.warning(
                    "Firecrawl | job %s still %s after %ds — giving up | root=%s",
                    job_id, status, self.max_wait_seconds, root_url,
                )
                return None
            await asyncio.sleep(self.poll_interval)

    async def _collect_documents(
        self, client: httpx.AsyncClient, body: dict[str, Any], root_url: str, start: float,
    ) -> list[dict[str, Any]] | None:
        """All documents of a completed job, or None if any result page is lost."""
        documents = list(body.get("data") or [])
        next_url = body.get("next")
        seen: set[str] = set()
        while next_url:
            if next_url in seen:
                logger.warning("Firecrawl | repeated next link %s | root=%s", next_url, root_url)
                return None
            if time.monotonic() - start >= self.max_wait_seconds:
                logger.warning(
                    "Firecrawl | results still paginating after %ds, giving up | root=%s",
                    self.max_wait_seconds, root_url,
                )
                return None
            seen.add(next_url)

            resp = await client.get(next_url)
            page = self._parse_response(resp, "crawl page", root_url)
            if page is None:
                return None
            documents.extend(page.get("data") or [])
            next_url = page.get("next")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info("Firecrawl OK | documents=%d | %dms | root=%s", len(documents), elapsed_ms, root_url)
        return documents

    def _parse_response(self, resp: httpx.Response, what: str, root_url: str) -> dict[str, Any] | None:
        if not resp.is_success:
            logger.warning("Firecrawl | %s | status=%d | root=%s", what, resp.status_code, root_url)
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("Firecrawl | %s | non-JSON body | root=%s", what, root_url)
            return None
        if not isinstance(data, dict):
            logger.warning("Firecrawl | %s | unexpected body type | root=%s", what, root_url)
            return None
        if data.get("success") is False or isinstance(data.get("error"), str):
            logger.warning(
                "Firecrawl | %s | error response | root=%s | %s",
                what, root_url, str(data.get("error", ""))[:200],
            )
            return None
        return data
