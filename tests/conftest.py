"""Shared test fixtures and configuration."""

import os
import tempfile

import pytest

# No real credentials during tests; cache writes go to a throwaway directory
os.environ.setdefault("FIRECRAWL_API_KEY", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")
os.environ.setdefault("CACHE_DIR", tempfile.mkdtemp(prefix="doc-relevance-tests-"))

from doc_relevance.orchestrator.schemas import PageMetadata  # noqa: E402
from doc_relevance.services.cache import DiskCache  # noqa: E402


@pytest.fixture
def cache(tmp_path):
    """Fresh disk cache in a per-test directory."""
    return DiskCache(tmp_path / "cache", ttl_seconds=3600)


@pytest.fixture
def docs_pages():
    """Five pages discovered under https://docs.example.com."""
    return [
        PageMetadata(url="https://docs.example.com", title="Example Docs"),
        PageMetadata(url="https://docs.example.com/installation", title="Installation"),
        PageMetadata(url="https://docs.example.com/installation/docker", title="Install with Docker"),
        PageMetadata(url="https://docs.example.com/api", title="API Reference"),
        PageMetadata(url="https://docs.example.com/changelog", title=None),
    ]


@pytest.fixture
def sample_crawl_documents():
    """Sample Firecrawl /v1/crawl ``data`` entries."""
    return [
        {
            "markdown": "# Example Docs\n\nWelcome.",
            "metadata": {
                "title": "  Example Docs  ",
                "sourceURL": "https://docs.example.com",
                "statusCode": 200,
            },
        },
        {
            "markdown": "# Installing the CLI\n\nRun pip install.",
            "metadata": {"sourceURL": "https://docs.example.com/guides/install"},
        },
        {
            "url": "https://docs.example.com/reference/config_options.html",
            "markdown": "Configuration options are listed below.",
            "metadata": {},
        },
    ]
