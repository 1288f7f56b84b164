"""
CrawlContext 单元测试
"""
import unittest
import asyncio

from core.context import CrawlContext
from core.exceptions import QueueClosedError
from core.models import CrawlItem, PostType, SearchTarget


class TestCrawlContext(unittest.TestCase):
    """CrawlContext 测试"""

    def test_counters_start_at_zero(self):
        async def run():
            context = CrawlContext()
            self.assertTrue(all(v == 0 for v in context.get_counters().values()))
            self.assertEqual(context.increment("photos"), 1)
            self.assertEqual(context.increment("photos"), 2)
            self.assertEqual(context.counter("photos"), 2)

        asyncio.run(run())

    def test_for_target_seeds_downloaded_counters(self):
        async def run():
            target = SearchTarget(name="cats", downloaded_photos=5, downloaded_videos=2, downloaded_images=7)
            context = CrawlContext.for_target(target, queue_size=10)
            self.assertEqual(context.increment("photos"), 6)
            self.assertEqual(context.counter("videos"), 2)
            self.assertEqual(context.increment("total_downloads"), 8)
            self.assertEqual(context.counter("pages_crawled"), 0)

        asyncio.run(run())

    def test_add_to_download_list(self):
        """入队和统计同时发生"""
        async def run():
            context = CrawlContext(queue_size=10)
            item = CrawlItem(PostType.PHOTO, "https://64.media.tumblr.com/a_1280.jpg")
            await context.add_to_download_list(item)
            self.assertEqual(len(context.statistics), 1)
            self.assertEqual(context.queue.queue.qsize(), 1)

        asyncio.run(run())

    def test_add_after_close_not_counted(self):
        async def run():
            context = CrawlContext(queue_size=10)
            context.queue.close()
            with self.assertRaises(QueueClosedError):
                await context.add_to_download_list(CrawlItem(PostType.PHOTO, "x"))
            self.assertEqual(len(context.statistics), 0)

        asyncio.run(run())


if __name__ == "__main__":
    unittest.main()
