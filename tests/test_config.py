# config module tests
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError

from config import (
    IMAGE_SIZES,
    Config,
    CrawlerConfig,
    MediaConfig,
    SearchConfig,
    load_config_from_env,
)


class TestMediaConfig(unittest.TestCase):
    def test_defaults(self):
        media = MediaConfig()
        self.assertEqual(media.image_size, "1280")
        self.assertEqual(media.video_size, 1080)
        self.assertEqual(media.tumblr_hosts, ["data.tumblr.com", "media.tumblr.com"])

    def test_image_size_normalized(self):
        self.assertEqual(MediaConfig(image_size="RAW").image_size, "raw")

    def test_all_known_sizes_accepted(self):
        for size in IMAGE_SIZES:
            self.assertEqual(MediaConfig(image_size=size).image_size, size)

    def test_unknown_image_size_rejected(self):
        with self.assertRaises(ValidationError):
            MediaConfig(image_size="2048")

    def test_unknown_video_size_rejected(self):
        with self.assertRaises(ValidationError):
            MediaConfig(video_size=720)


class TestCrawlerConfig(unittest.TestCase):
    def test_defaults(self):
        crawler = CrawlerConfig()
        self.assertEqual(crawler.parallel_scans, 4)
        self.assertEqual(crawler.parallel_downloads, 8)
        self.assertFalse(crawler.limit_connections)
        self.assertEqual(crawler.max_empty_pages, 3)

    def test_parallel_scans_must_be_positive(self):
        with self.assertRaises(ValidationError):
            CrawlerConfig(parallel_scans=0)


class TestSearchConfig(unittest.TestCase):
    def test_defaults(self):
        search = SearchConfig()
        self.assertEqual(search.base_url, "https://www.tumblr.com")
        self.assertIsNone(search.cookie)
        self.assertTrue(search.safe_mode)


class TestConfigDirectories(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_init_creates_directories(self):
        cfg = Config(
            media={"download_dir": self.test_dir / "downloads"},
            database={"sqlite_path": self.test_dir / "data" / "db.sqlite"},
            log={"log_dir": self.test_dir / "logs"},
        )
        self.assertTrue(cfg.media.download_dir.is_dir())
        self.assertTrue((self.test_dir / "data").is_dir())
        self.assertTrue((self.test_dir / "logs").is_dir())


class TestLoadConfigFromEnv(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_env_overrides(self):
        env = {
            "TUMBLR_COOKIE": "sid=abc",
            "PARALLEL_SCANS": "2",
            "PARALLEL_DOWNLOADS": "3",
            "LIMIT_CONNECTIONS": "true",
            "IMAGE_SIZE": "raw",
            "VIDEO_SIZE": "480",
            "DOWNLOAD_DIR": str(self.test_dir / "dl"),
            "SQLITE_PATH": str(self.test_dir / "db" / "x.db"),
        }
        with patch.dict(os.environ, env):
            cfg = load_config_from_env()
        self.assertEqual(cfg.search.cookie, "sid=abc")
        self.assertEqual(cfg.crawler.parallel_scans, 2)
        self.assertEqual(cfg.crawler.parallel_downloads, 3)
        self.assertTrue(cfg.crawler.limit_connections)
        self.assertEqual(cfg.media.image_size, "raw")
        self.assertEqual(cfg.media.video_size, 480)
        self.assertEqual(cfg.media.download_dir, self.test_dir / "dl")
        self.assertEqual(cfg.database.sqlite_path, self.test_dir / "db" / "x.db")


if __name__ == "__main__":
    unittest.main()
