import asyncio
import sqlite3
import tempfile
import unittest
from pathlib import Path

from bitcli.cache import ShortLinkCache
from bitcli.cache.store import DB_NAME
from bitcli.core import Bitlink, CacheError


class ShortLinkCacheTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_miss_returns_none(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        try:
            self.assertIsNone(await cache.get("https://example.com/"))
        finally:
            await cache.close()

    async def test_put_then_get(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        try:
            await cache.put("https://example.com/", Bitlink(link="https://bit.ly/abc", id="bit.ly/abc"), domain="bit.ly")
            record = await cache.get("https://example.com/")
        finally:
            await cache.close()

        self.assertIsNotNone(record)
        self.assertEqual(record.long_url, "https://example.com/")
        self.assertEqual(record.short_url, "https://bit.ly/abc")
        self.assertEqual(record.bitlink_id, "bit.ly/abc")
        self.assertEqual(record.domain, "bit.ly")
        self.assertIsNotNone(record.created_at.tzinfo)

    async def test_records_are_write_once(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        try:
            await cache.put("https://example.com/", Bitlink(link="https://bit.ly/first", id="bit.ly/first"))
            await cache.put("https://example.com/", Bitlink(link="https://bit.ly/second", id="bit.ly/second"))
            record = await cache.get("https://example.com/")
        finally:
            await cache.close()

        self.assertEqual(record.short_url, "https://bit.ly/first")

    async def test_survives_reopen(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        await cache.put("https://example.com/a", Bitlink(link="https://bit.ly/a", id="bit.ly/a"))
        await cache.close()

        reopened = await ShortLinkCache.open(self.dir)
        try:
            record = await reopened.get("https://example.com/a")
        finally:
            await reopened.close()

        self.assertEqual(record.short_url, "https://bit.ly/a")
        self.assertTrue((self.dir / DB_NAME).exists())

    async def test_creates_missing_directory(self) -> None:
        nested = self.dir / "deeper" / "cache"
        cache = await ShortLinkCache.open(nested)
        await cache.close()

        self.assertTrue((nested / DB_NAME).exists())

    async def test_concurrent_writes_to_distinct_keys(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        try:
            keys = [f"https://example.com/{i}" for i in range(25)]
            await asyncio.gather(
                *(cache.put(key, Bitlink(link=f"https://bit.ly/{i}", id=f"bit.ly/{i}")) for i, key in enumerate(keys))
            )
            records = await asyncio.gather(*(cache.get(key) for key in keys))
        finally:
            await cache.close()

        self.assertEqual([r.short_url for r in records], [f"https://bit.ly/{i}" for i in range(25)])

    async def test_disabled_cache_always_misses(self) -> None:
        cache = await ShortLinkCache.open(None)

        await cache.put("https://example.com/", Bitlink(link="https://bit.ly/x", id="bit.ly/x"))

        self.assertFalse(cache.enabled)
        self.assertIsNone(await cache.get("https://example.com/"))
        await cache.close()

    async def test_disabled_cache_cannot_connect(self) -> None:
        cache = await ShortLinkCache.open(None)

        with self.assertRaises(CacheError):
            await asyncio.to_thread(cache._connect)

    async def test_unusable_directory_raises(self) -> None:
        blocker = self.dir / "not-a-dir"
        blocker.write_text("occupied", encoding="utf-8")

        with self.assertRaises(CacheError):
            await ShortLinkCache.open(blocker)

    async def test_storage_failure_is_not_a_miss(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        conn = sqlite3.connect(self.dir / DB_NAME)
        try:
            conn.execute("DROP TABLE bitlinks")
            conn.commit()
        finally:
            conn.close()

        try:
            with self.assertRaises(CacheError):
                await cache.get("https://example.com/")
        finally:
            await cache.close()

    async def test_closed_cache_raises(self) -> None:
        cache = await ShortLinkCache.open(self.dir)
        await cache.close()

        with self.assertRaises(CacheError):
            await cache.get("https://example.com/")


if __name__ == "__main__":
    unittest.main()
