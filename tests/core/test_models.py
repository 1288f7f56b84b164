"""
数据模型单元测试
"""
import unittest
from dataclasses import FrozenInstanceError
from pathlib import Path

from core.models import CrawlItem, PostType, SearchTarget


class TestCrawlItem(unittest.TestCase):
    """CrawlItem 测试"""

    def test_synthetic_id_unique(self):
        a = CrawlItem(PostType.PHOTO, "https://64.media.tumblr.com/a_1280.jpg")
        b = CrawlItem(PostType.PHOTO, "https://64.media.tumblr.com/a_1280.jpg")
        self.assertNotEqual(a.synthetic_id, b.synthetic_id)
        self.assertEqual(len(a.synthetic_id), 32)

    def test_immutable(self):
        item = CrawlItem(PostType.VIDEO, "https://vt.tumblr.com/x.mp4")
        with self.assertRaises(FrozenInstanceError):
            item.url = "other"


class TestSearchTarget(unittest.TestCase):
    """SearchTarget 测试"""

    def test_page_size_clamped(self):
        self.assertEqual(SearchTarget(name="cats", page_size=0).page_size, 100)
        self.assertEqual(SearchTarget(name="cats", page_size=101).page_size, 100)
        self.assertEqual(SearchTarget(name="cats", page_size=20).page_size, 20)

    def test_from_url(self):
        target = SearchTarget.from_url("http://www.tumblr.com/search/cats", Path("/tmp/dl"))
        self.assertEqual(target.name, "cats")
        self.assertTrue(target.url.startswith("https://"))
        self.assertEqual(target.location, Path("/tmp/dl"))

    def test_from_url_truncates(self):
        url = "https://www.tumblr.com/search/cats/recent?src=typed_query"
        target = SearchTarget.from_url(url, Path("/tmp/dl"))
        self.assertEqual(target.url, url[:len("cats") + 30])

    def test_from_url_without_name(self):
        with self.assertRaises(ValueError):
            SearchTarget.from_url("https://www.tumblr.com/search/", Path("/tmp/dl"))

    def test_download_location(self):
        target = SearchTarget(name="cats", location=Path("/tmp/dl"))
        self.assertEqual(target.download_location(), Path("/tmp/dl/cats"))

    def test_tag_list(self):
        self.assertEqual(SearchTarget(name="cats", tags=" a, b ,,c").tag_list(), ["a", "b", "c"])
        self.assertEqual(SearchTarget(name="cats", tags="  ").tag_list(), [])

    def test_json_round_trip_keeps_counters(self):
        target = SearchTarget(name="cats", photos=3, downloaded_photos=2, duplicate_photos=1)
        restored = SearchTarget.model_validate_json(target.model_dump_json())
        self.assertEqual(restored, target)


if __name__ == "__main__":
    unittest.main()
