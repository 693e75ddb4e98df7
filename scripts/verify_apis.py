#!/usr/bin/env python3
"""Real API verification script — run outside sandbox with actual API keys.

Usage:
  1. Fill in FIRECRAWL_API_KEY and ANTHROPIC_API_KEY in .env
  2. Run: python scripts/verify_apis.py [root_url] [query]

Steps:
  Step 1: Verify .env configuration
  Step 2: Test Firecrawl discovery (FIRECRAWL_API_KEY required)
  Step 3: Test Claude relevance filtering (ANTHROPIC_API_KEY required)
  Step 4: Full lookup twice — live discovery, then cache
"""

import asyncio
import os
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

ROOT_URL = sys.argv[1] if len(sys.argv) > 1 else "https://docs.firecrawl.dev"
QUERY = sys.argv[2] if len(sys.argv) > 2 else "How do I crawl a website?"
LIMIT = 5


def step_header(n: int, title: str) -> None:
    print(f"\n{'='*60}")
    print(f"  Step {n}: {title}")
    print(f"{'='*60}\n")


def ok(msg: str) -> None:
    print(f"  ✅ {msg}")


def fail(msg: str) -> None:
    print(f"  ❌ {msg}")


def info(msg: str) -> None:
    print(f"  ℹ️  {msg}")


async def step1_verify_env():
    step_header(1, "Verify .env Configuration")
    from doc_relevance.config import settings

    passed = True
    if settings.firecrawl_api_key:
        ok(f"FIRECRAWL_API_KEY: set ({settings.firecrawl_api_key[:6]}...)")
    else:
        fail("FIRECRAWL_API_KEY: NOT SET — discovery will fail!")
        passed = False

    if settings.anthropic_api_key:
        ok(f"ANTHROPIC_API_KEY: set ({settings.anthropic_api_key[:10]}...)")
    else:
        fail("ANTHROPIC_API_KEY: NOT SET — relevance filtering will fail!")
        passed = False

    ok(f"Claude model: {settings.claude_model}")
    ok(f"Cache: {settings.cache_dir} (ttl {settings.cache_ttl_seconds}s)")
    return passed


async def step2_test_discovery():
    step_header(2, "Test Firecrawl Discovery")
    from doc_relevance.config import settings
    from doc_relevance.integrations.firecrawl import FirecrawlClient
    from doc_relevance.pipelines.discovery import PageDiscoverer

    discoverer = PageDiscoverer(FirecrawlClient(
        api_key=settings.firecrawl_api_key,
        base_url=settings.firecrawl_api_url,
        max_wait_seconds=settings.discovery_timeout_seconds,
    ))
    info(f"Crawling: {ROOT_URL} (limit {LIMIT})")
    pages = await discoverer.discover(ROOT_URL, LIMIT)

    if pages:
        ok(f"Discovered {len(pages)} pages")
        for page in pages[:5]:
            print(f"    - {page.url} | {page.title}")
        return pages
    fail("Discovery returned no pages — check key / credits / root URL")
    return None


async def step3_test_filter(pages):
    step_header(3, "Test Claude Relevance Filter")
    from doc_relevance.config import settings
    from doc_relevance.pipelines.relevance_filter import RelevanceFilter
    from doc_relevance.services.llm_client import LLMClient

    info(f"Query: {QUERY}")
    urls = await RelevanceFilter(LLMClient(settings)).filter(pages, QUERY)
    if urls is None:
        fail("Filter failed — check ANTHROPIC_API_KEY / model name")
        return False
    ok(f"{len(urls)} relevant page(s)")
    for url in urls:
        print(f"    - {url}")
    return True


async def step4_full_lookup():
    step_header(4, "Full Lookup: live discovery, then cache")
    from doc_relevance.config import settings
    from doc_relevance.main import build_orchestrator
    from doc_relevance.orchestrator.lookup import TOOL_NAME

    config = settings.model_copy(update={"cache_dir": Path(tempfile.mkdtemp(prefix="doc-relevance-verify-"))})
    orchestrator = build_orchestrator(config)
    arguments = {"root_url": ROOT_URL, "query": QUERY, "max_pages_to_discover": LIMIT}

    first = await orchestrator.handle_tool_call(TOOL_NAME, arguments)
    second = await orchestrator.handle_tool_call(TOOL_NAME, arguments)

    for label, result in (("first", first), ("second", second)):
        info(f"{label}: isError={result.isError} | {result.lines[0][:100]}")

    if first.isError or second.isError:
        fail("Lookup reported an error")
        return False
    if second.source != "cache (discovered URLs)":
        fail(f"Second lookup not served from cache (source={second.source})")
        return False
    ok("Second lookup served from cache")
    return True


async def main():
    print("\n📚 Doc Relevance Engine — Real API Verification")
    print("=" * 60)

    results = {}

    # Step 1: Verify env
    results[1] = await step1_verify_env()

    # Step 2: Firecrawl
    pages = await step2_test_discovery()
    results[2] = bool(pages)

    # Step 3: Claude
    if pages:
        results[3] = await step3_test_filter(pages)
    else:
        print("\n⚠️  Skipping filter test (no discovered pages)")
        results[3] = False

    # Step 4: Full lookup
    if results[2] and results[3]:
        results[4] = await step4_full_lookup()
    else:
        print("\n⚠️  Skipping full lookup (earlier steps failed)")
        results[4] = False

    # Summary
    print(f"\n{'='*60}")
    print("  SUMMARY")
    print(f"{'='*60}")
    for step_n, passed in sorted(results.items()):
        status = "✅ PASS" if passed else "❌ FAIL"
        print(f"  Step {step_n}: {status}")

    total_passed = sum(1 for v in results.values() if v)
    total = len(results)
    print(f"\n  {total_passed}/{total} steps passed")
    print(f"{'='*60}\n")

    sys.exit(0 if all(results.values()) else 1)


if __name__ == "__main__":
    asyncio.run(main())
