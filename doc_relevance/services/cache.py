"""Disk-backed TTL cache for expensive upstream results (page discovery).

Layout on disk:
  <cache_dir>/<origin label>/<sha256(key)>.json
  {"timestamp": <epoch ms>, "content": "<payload string>"}

The origin label is the host of the URL embedded in the key; keys without a
usable host go to the ``_invalid`` partition. Filenames are hashes of the
full key, so any key maps to exactly one bounded, filesystem-safe name.

Expiry is checked twice on read: against the file mtime (no read needed),
then against the timestamp stored inside the entry. Either one past the TTL
evicts the entry. There is no background sweeper; expired entries are
deleted when read, plus one ``purge_expired`` pass at application start.

Graceful degradation: every I/O or parse failure is logged and treated as a
miss (reads) or a skipped write. Callers never see cache exceptions.
"""

import asyncio
import contextlib
import hashlib
import json
import logging
import os
import shutil
import tempfile
import time
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from doc_relevance.utils.url_utils import normalize_url, origin_label

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
INVALID_ORIGIN = "_invalid"
ENTRY_SUFFIX = ".json"


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    EXPIRED = "expired"
    ERROR = "error"


@dataclass
class CacheLookup:
    """Outcome of a read. Only ``HIT`` carries content."""

    status: CacheStatus
    content: str | None = None

    @property
    def found(self) -> bool:
        return self.status is CacheStatus.HIT


class DiskCache:
    """Async file cache partitioned by origin and addressed by key hash."""

    def __init__(self, cache_dir: Path | str, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds
        self.stats: Counter[str] = Counter()
        self._ensure_root()

    @staticmethod
    def make_key(root_url: str, limit: int) -> str:
        """Composite key for a discovery run; each page limit gets its own entry."""
        return f"discovered_pages:{normalize_url(root_url)}:limit{limit}"

    def path_for(self, key: str) -> Path:
        """Storage location for ``key``."""
        label = origin_label(key) or INVALID_ORIGIN
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / label / f"{digest}{ENTRY_SUFFIX}"

    # ═══════════════ PUBLIC API ═══════════════

    async def lookup(self, key: str) -> CacheLookup:
        """Read ``key`` and report hit / miss / expired / error."""
        result = await asyncio.to_thread(self._read, key)
        self.stats[result.status.value] += 1
        if result.found:
            logger.info("Cache HIT | key=%s", key[:120])
        else:
            logger.debug("Cache %s | key=%s", result.status.value.upper(), key[:120])
        return result

    async def get(self, key: str) -> str | None:
        """Cached payload for ``key``, or None when absent, expired or unreadable."""
        result = await self.lookup(key)
        return result.content

    async def set(self, key: str, content: str) -> None:
        """Store ``content`` under ``key`` with the current time. Last writer wins."""
        written = await asyncio.to_thread(self._write, key, content)
        self.stats["write" if written else "write_error"] += 1

    async def clear(self) -> None:
        """Delete every entry and recreate the empty cache root."""
        await asyncio.to_thread(self._clear)

    async def purge_expired(self) -> int:
        """Remove expired and unreadable entries in one pass. Returns the count removed."""
        return await asyncio.to_thread(self._purge_expired)

    # ═══════════════ FILE OPERATIONS ═══════════════

    def _ensure_root(self) -> bool:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error("Cache dir create failed | dir=%s | %s", self.cache_dir, str(e)[:200])
            return False

    def _is_stale(self, stored_at_seconds: float, now: float) -> bool:
        return now - stored_at_seconds > self.ttl_seconds

    def _read(self, key: str) -> CacheLookup:
        path = self.path_for(key)
        now = time.time()

        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return CacheLookup(CacheStatus.MISS)
        except OSError as e:
            logger.error("Cache stat failed | file=%s | %s", path, str(e)[:200])
            return CacheLookup(CacheStatus.ERROR)

        if self._is_stale(mtime, now):
            self._evict(path)
            return CacheLookup(CacheStatus.EXPIRED)

        try:
            timestamp_ms, content = _load_entry(path)
        except FileNotFoundError:
            # Removed between stat and read
            return CacheLookup(CacheStatus.MISS)
        except (OSError, ValueError) as e:
            logger.warning("Cache read failed | file=%s | %s", path, str(e)[:200])
            return CacheLookup(CacheStatus.ERROR)

        if self._is_stale(timestamp_ms / 1000, now):
            self._evict(path)
            return CacheLookup(CacheStatus.EXPIRED)

        return CacheLookup(CacheStatus.HIT, content)

    def _write(self, key: str, content: str) -> bool:
        path = self.path_for(key)
        entry = {"timestamp": int(time.time() * 1000), "content": content}

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(entry, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except (OSError, TypeError, ValueError):
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("Cache write failed | file=%s | %s", path, str(e)[:200])
            return False

        logger.info("Cache SET | key=%s | ttl=%ds", key[:120], self.ttl_seconds)
        return True

    def _evict(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
            logger.info("Cache EVICT | file=%s", path.name)
        except OSError as e:
            logger.error("Cache evict failed | file=%s | %s", path, str(e)[:200])

    def _clear(self) -> None:
        try:
            shutil.rmtree(self.cache_dir)
            logger.info("Cache cleared | dir=%s", self.cache_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Cache clear failed | dir=%s | %s", self.cache_dir, str(e)[:200])
        self._ensure_root()

    def _purge_expired(self) -> int:
        now = time.time()
        removed = 0
        for path in self.cache_dir.glob(f"*/*{ENTRY_SUFFIX}"):
            try:
                stale = self._is_stale(path.stat().st_mtime, now)
                if not stale:
                    timestamp_ms, _ = _load_entry(path)
                    stale = self._is_stale(timestamp_ms / 1000, now)
            except FileNotFoundError:
                continue
            except (OSError, ValueError) as e:
                logger.warning("Cache sweep dropping unreadable entry | file=%s | %s", path, str(e)[:200])
                stale = True
            if stale:
                self._evict(path)
                removed += 1
        logger.info("Cache sweep | dir=%s | removed=%d", self.cache_dir, removed)
        return removed


def _load_entry(path: Path) -> tuple[float, str]:
    """Parse an entry file into (timestamp_ms, content); ValueError if malformed."""
    entry = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(entry, dict):
        raise ValueError("cache entry is not an object")
    timestamp = entry.get("timestamp")
    content = entry.get("content")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise ValueError("cache entry has no numeric timestamp")
    if not isinstance(content, str):
        raise ValueError("cache entry has no string content")
    return float(timestamp), content
