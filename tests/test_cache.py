"""Tests for the disk cache — layout, TTL, and graceful degradation."""

import asyncio
import hashlib
import json
import os
import time

import pytest

from doc_relevance.services.cache import INVALID_ORIGIN, CacheStatus, DiskCache


def _write_entry(path, timestamp_ms, content="payload"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"timestamp": timestamp_ms, "content": content}), encoding="utf-8")


class TestCacheKeys:
    def test_make_key_normalizes_root(self):
        key1 = DiskCache.make_key("HTTP://WWW.Docs.Example.com/", 20)
        key2 = DiskCache.make_key("docs.example.com", 20)
        assert key1 == key2 == "discovered_pages:https://docs.example.com:limit20"

    def test_make_key_distinct_limits(self):
        assert DiskCache.make_key("https://docs.example.com", 5) != DiskCache.make_key("https://docs.example.com", 10)


class TestCacheLayout:
    def test_path_is_origin_partition_and_hash(self, cache):
        key = "discovered_pages:https://docs.example.com:limit5"
        path = cache.path_for(key)
        assert path.parent == cache.cache_dir / "docs.example.com"
        assert path.name == hashlib.sha256(key.encode()).hexdigest() + ".json"

    def test_different_origins_never_share_partition(self, cache):
        a = cache.path_for("https://docs.example.com/a")
        b = cache.path_for("https://api.example.org/a")
        assert a.parent != b.parent

    def test_same_origin_distinct_filenames(self, cache):
        a = cache.path_for(DiskCache.make_key("https://docs.example.com", 5))
        b = cache.path_for(DiskCache.make_key("https://docs.example.com", 6))
        assert a.parent == b.parent
        assert a.name != b.name

    def test_key_without_host_goes_to_invalid_partition(self, cache):
        path = cache.path_for("no url in here")
        assert path.parent == cache.cache_dir / INVALID_ORIGIN

    @pytest.mark.asyncio
    async def test_entry_file_format(self, cache):
        before = int(time.time() * 1000)
        await cache.set("https://docs.example.com", "[1, 2]")
        entry = json.loads(cache.path_for("https://docs.example.com").read_text(encoding="utf-8"))
        assert entry["content"] == "[1, 2]"
        assert entry["timestamp"] >= before


class TestCacheReadWrite:
    @pytest.mark.asyncio
    async def test_set_and_get(self, cache):
        await cache.set("https://docs.example.com/k", "value")
        assert await cache.get("https://docs.example.com/k") == "value"

    @pytest.mark.asyncio
    async def test_get_miss(self, cache):
        result = await cache.lookup("https://docs.example.com/missing")
        assert result.status is CacheStatus.MISS
        assert await cache.get("https://docs.example.com/missing") is None

    @pytest.mark.asyncio
    async def test_overwrite(self, cache):
        await cache.set("https://docs.example.com/k", "v1")
        await cache.set("https://docs.example.com/k", "v2")
        assert await cache.get("https://docs.example.com/k") == "v2"

    @pytest.mark.asyncio
    async def test_unicode_payload(self, cache):
        await cache.set("https://docs.example.com/k", "Установка — インストール")
        assert await cache.get("https://docs.example.com/k") == "Установка — インストール"

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, cache):
        await cache.set("https://docs.example.com/k", "v")
        leftovers = [p.name for p in cache.path_for("https://docs.example.com/k").parent.iterdir()]
        assert all(name.endswith(".json") for name in leftovers)

    @pytest.mark.asyncio
    async def test_stats_counted(self, cache):
        await cache.set("https://docs.example.com/k", "v")
        await cache.get("https://docs.example.com/k")
        await cache.get("https://docs.example.com/other")
        assert cache.stats["write"] == 1
        assert cache.stats["hit"] == 1
        assert cache.stats["miss"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_writes_all_counted(self, cache):
        keys = [f"https://docs.example.com/page-{i}" for i in range(25)]
        await asyncio.gather(*(cache.set(key, "v") for key in keys))
        assert cache.stats["write"] == 25
        assert cache.stats["write_error"] == 0


class TestCacheExpiry:
    @pytest.mark.asyncio
    async def test_embedded_timestamp_expired(self, cache):
        key = "https://docs.example.com/old"
        path = cache.path_for(key)
        _write_entry(path, int((time.time() - 7200) * 1000))

        result = await cache.lookup(key)
        assert result.status is CacheStatus.EXPIRED
        assert result.content is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_mtime_expired(self, cache):
        key = "https://docs.example.com/old-file"
        path = cache.path_for(key)
        _write_entry(path, int(time.time() * 1000))
        old = time.time() - 7200
        os.utime(path, (old, old))

        assert await cache.get(key) is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_fresh_entry_kept(self, cache):
        key = "https://docs.example.com/fresh"
        path = cache.path_for(key)
        _write_entry(path, int((time.time() - 60) * 1000), content="still good")

        assert await cache.get(key) == "still good"
        assert path.exists()

    @pytest.mark.asyncio
    async def test_purge_expired(self, cache):
        fresh = "https://docs.example.com/fresh"
        stale = "https://other.example.com/stale"
        await cache.set(fresh, "v")
        _write_entry(cache.path_for(stale), int((time.time() - 7200) * 1000))
        corrupt = cache.path_for("https://docs.example.com/corrupt")
        corrupt.write_text("{not json", encoding="utf-8")

        removed = await cache.purge_expired()
        assert removed == 2
        assert cache.path_for(fresh).exists()
        assert not cache.path_for(stale).exists()
        assert not corrupt.exists()


class TestCacheDegradation:
    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, cache):
        key = "https://docs.example.com/corrupt"
        path = cache.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")

        result = await cache.lookup(key)
        assert result.status is CacheStatus.ERROR
        assert await cache.get(key) is None

    @pytest.mark.asyncio
    async def test_wrong_shape_is_a_miss(self, cache):
        key = "https://docs.example.com/shape"
        path = cache.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"timestamp": "yesterday", "content": 3}), encoding="utf-8")
        assert await cache.get(key) is None

    @pytest.mark.asyncio
    async def test_write_failure_swallowed(self, cache):
        key = "https://blocked.example.com/k"
        # A regular file where the partition directory should be
        cache.path_for(key).parent.write_text("in the way", encoding="utf-8")

        await cache.set(key, "v")
        assert cache.stats["write_error"] == 1
        assert await cache.get(key) is None


class TestCacheClear:
    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, cache):
        await cache.set("https://docs.example.com/a", "1")
        await cache.set("https://api.example.org/b", "2")

        await cache.clear()

        assert cache.cache_dir.is_dir()
        assert list(cache.cache_dir.iterdir()) == []
        assert await cache.get("https://docs.example.com/a") is None

    @pytest.mark.asyncio
    async def test_clear_on_missing_root(self, tmp_path):
        cache = DiskCache(tmp_path / "gone")
        (tmp_path / "gone").rmdir()
        await cache.clear()
        assert (tmp_path / "gone").is_dir()
