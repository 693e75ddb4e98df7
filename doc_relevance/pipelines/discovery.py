"""Page discovery — crawl a documentation root and label each page.

Turns raw Firecrawl documents into ``PageMetadata``. Pages without a title
get one synthesized from their first markdown heading or URL path.
"""

import logging
import re
from typing import Any
from urllib.parse import urlsplit

from doc_relevance.integrations.firecrawl import FirecrawlClient
from doc_relevance.orchestrator.schemas import PageMetadata

logger = logging.getLogger(__name__)

UNKNOWN_URL = "Unknown URL"
UNTITLED = "Untitled Page"


class PageDiscoverer:
    """Discovery collaborator backed by a Firecrawl crawl."""

    def __init__(self, client: FirecrawlClient):
        self.client = client

    async def discover(self, root_url: str, limit: int = 20) -> list[PageMetadata] | None:
        """Pages under ``root_url`` in crawl order; [] if none were found, None on failure."""
        documents = await self.client.crawl(root_url, limit)
        if documents is None:
            logger.warning("Discovery failed | root=%s", root_url)
            return None

        pages = [to_page(doc) for doc in documents if isinstance(doc, dict)]
        logger.info("Discovery | root=%s | limit=%d | pages=%d", root_url, limit, len(pages))
        return pages


def _metadata(doc: dict[str, Any]) -> dict[str, Any]:
    metadata = doc.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def to_page(doc: dict[str, Any]) -> PageMetadata:
    metadata = _metadata(doc)
    url = doc.get("url") or metadata.get("sourceURL") or metadata.get("url") or ""
    return PageMetadata(
        url=url or UNKNOWN_URL,
        title=synthesize_title(doc, url),
    )


def synthesize_title(doc: dict[str, Any], url: str) -> str:
    """Best available label: metadata title, leading H1, then the last path segment."""
    metadata = _metadata(doc)
    title = metadata.get("title")
    if isinstance(title, list):
        title = title[0] if title else None
    if isinstance(title, str) and title.strip():
        return title.strip()

    markdown = doc.get("markdown")
    if isinstance(markdown, str) and markdown.strip():
        first_line = markdown.strip().split("\n")[0]
        if first_line.startswith("# "):
            heading = first_line[2:].strip()
            if heading:
                return heading

    return title_from_url(url)


def title_from_url(url: str) -> str:
    """``/guides/getting-started.html`` → ``Getting Started``."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return url or UNTITLED

    segments = [part for part in path.split("/") if part]
    if not segments:
        return url or UNTITLED

    words = re.sub(r"[-_]", " ", segments[-1])
    words = re.sub(r"\.(html|md)$", "", words, flags=re.IGNORECASE)
    return " ".join(word[:1].upper() + word[1:] for word in words.split(" "))
