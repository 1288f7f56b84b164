"""
Storage 单元测试（使用临时 SQLite）
"""
import unittest
import tempfile
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from core.models import SearchTarget
from core.storage import Storage


class TestStorageConnect(unittest.TestCase):
    """Storage.connect 测试"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.db_path = Path(self.test_dir) / "sub" / "test.db"

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_connect_creates_db(self):
        """connect 创建数据库文件及父目录"""
        storage = Storage(self.db_path)
        storage.connect()
        try:
            self.assertTrue(self.db_path.exists())
            self.assertTrue(storage.connected)
        finally:
            storage.close()
        self.assertFalse(storage.connected)

    def test_connect_failure_sets_conn_none(self):
        """connect 时 sqlite 异常则保持未连接"""
        with patch("core.storage.sqlite3.connect", side_effect=sqlite3.Error("fail")):
            storage = Storage(self.db_path)
            storage.connect()
            self.assertFalse(storage.connected)

    def test_unconnected_returns_empty(self):
        """未连接时各方法返回空值而不是抛异常"""
        storage = Storage(self.db_path)
        self.assertFalse(storage.save_target(SearchTarget(name="cats")))
        self.assertIsNone(storage.load_target("cats"))
        self.assertFalse(storage.link_exists("cats", "a.jpg"))
        self.assertEqual(storage.get_link_count("cats"), 0)
        self.assertEqual(storage.clear_links("cats"), 0)


class TestStorageTargets(unittest.TestCase):
    """搜索目标持久化"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.storage = Storage(Path(self.test_dir) / "test.db")
        self.storage.connect()

    def tearDown(self):
        self.storage.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_save_and_load(self):
        target = SearchTarget(
            name="cats",
            location=Path(self.test_dir),
            download_pages="1-3",
            photos=10,
            duplicate_photos=2,
            last_complete_crawl=datetime(2024, 1, 2, 3, 4, 5),
        )
        self.assertTrue(self.storage.save_target(target))
        self.assertTrue(self.storage.target_exists("cats"))

        loaded = self.storage.load_target("cats")
        self.assertEqual(loaded, target)

    def test_save_overwrites(self):
        self.storage.save_target(SearchTarget(name="cats", photos=1))
        self.storage.save_target(SearchTarget(name="cats", photos=5))
        self.assertEqual(self.storage.load_target("cats").photos, 5)

    def test_load_missing(self):
        self.assertIsNone(self.storage.load_target("dogs"))
        self.assertFalse(self.storage.target_exists("dogs"))

    def test_delete_target_removes_links(self):
        self.storage.save_target(SearchTarget(name="cats"))
        self.storage.add_link("cats", "a.jpg")
        self.assertTrue(self.storage.delete_target("cats"))
        self.assertFalse(self.storage.target_exists("cats"))
        self.assertEqual(self.storage.get_link_count("cats"), 0)


class TestStorageLinks(unittest.TestCase):
    """链接索引"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.storage = Storage(Path(self.test_dir) / "test.db")
        self.storage.connect()

    def tearDown(self):
        self.storage.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_add_and_check(self):
        self.assertFalse(self.storage.link_exists("cats", "a.jpg"))
        self.assertTrue(self.storage.add_link("cats", "a.jpg"))
        self.assertTrue(self.storage.link_exists("cats", "a.jpg"))
        self.assertFalse(self.storage.link_exists("dogs", "a.jpg"))

    def test_add_duplicate_ignored(self):
        self.storage.add_link("cats", "a.jpg")
        self.storage.add_link("cats", "a.jpg")
        self.storage.add_link("cats", "b.jpg")
        self.assertEqual(self.storage.get_link_count("cats"), 2)
        self.assertTrue(self.storage.link_exists("cats", "b.jpg"))

    def test_clear_links(self):
        self.storage.add_link("cats", "a.jpg")
        self.storage.add_link("cats", "b.jpg")
        self.storage.add_link("dogs", "c.jpg")
        self.assertEqual(self.storage.clear_links("cats"), 2)
        self.assertEqual(self.storage.get_link_count("cats"), 0)
        self.assertEqual(self.storage.get_link_count("dogs"), 1)


if __name__ == "__main__":
    unittest.main()
