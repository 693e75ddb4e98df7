"""Fake collaborators for orchestrator and API tests."""

from doc_relevance.orchestrator.schemas import PageMetadata


class FakeDiscoverer:
    """Discovery collaborator returning a canned result and counting calls."""

    def __init__(self, pages=None, error: Exception | None = None):
        self.pages = pages
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def discover(self, root_url: str, limit: int):
        self.calls.append((root_url, limit))
        if self.error:
            raise self.error
        return self.pages


class FakeFilter:
    """Filtering collaborator returning a canned URL list (or None) and recording queries."""

    def __init__(self, urls=None):
        self.urls = urls
        self.calls: list[tuple[list[PageMetadata], str]] = []

    async def filter(self, pages, query: str):
        self.calls.append((pages, query))
        return self.urls
