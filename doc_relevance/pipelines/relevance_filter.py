"""Relevance filter — ask the LLM which discovered pages answer a query.

Returns the relevant URLs, [] when the model finds none, and None when the
model could not be asked or gave an unusable reply.
"""

import logging
import re

from doc_relevance.orchestrator.schemas import PageMetadata
from doc_relevance.services.llm_client import LLMClient, load_prompt

logger = logging.getLogger(__name__)

NONE_MARKER = "NONE"
_SEPARATOR_RE = re.compile(r"[,\n]")
_WRAPPING = "\"'`<> "


class RelevanceFilter:
    """Filtering collaborator backed by Claude."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def filter(self, pages: list[PageMetadata], query: str) -> list[str] | None:
        if not pages:
            return []

        system_prompt = load_prompt("relevance_filter")
        user_message = build_user_message(pages, query)

        try:
            reply = await self.llm.complete(system_prompt, user_message)
        except Exception as e:
            logger.error("Relevance filter failed | query=%s | %s", query[:80], str(e)[:200])
            return None

        urls = parse_reply(reply)
        logger.info("Relevance filter | query=%s | pages=%d | relevant=%d", query[:80], len(pages), len(urls))
        return urls


def build_user_message(pages: list[PageMetadata], query: str) -> str:
    listing = "\n".join(
        f"{i}. URL: {page.url}" + (f" (Title: {page.title})" if page.title else "")
        for i, page in enumerate(pages, start=1)
    )
    return (
        "Discovered Pages:\n"
        "---\n"
        f"{listing}\n"
        "---\n\n"
        f"User's Question: {query}\n\n"
        "Comma-separated list of relevant URLs (or NONE):"
    )


def parse_reply(reply: str) -> list[str]:
    """Split a ``url1,url2`` / ``NONE`` reply into a URL list."""
    trimmed = reply.strip()
    if trimmed.upper() == NONE_MARKER:
        return []
    urls = (part.strip().strip(_WRAPPING) for part in _SEPARATOR_RE.split(trimmed))
    return [url for url in urls if url and url.upper() != NONE_MARKER]
