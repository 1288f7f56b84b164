"""
ProgressReporter 单元测试
"""
import unittest
from unittest.mock import patch

from core.progress import ProgressReporter, TqdmProgressReporter


class TestProgressReporter(unittest.TestCase):

    def test_update_formats_message(self):
        progress = ProgressReporter("cats")
        progress.update("正在下载 {}", "a.jpg")
        self.assertEqual(progress.last_message, "正在下载 a.jpg")

    def test_show_error_keeps_target_name(self):
        progress = ProgressReporter("cats")
        progress.show_error(RuntimeError("HTTP 429"), "请求过于频繁")
        self.assertEqual(progress.errors, [
            {"target": "cats", "message": "请求过于频繁", "error": "HTTP 429"}
        ])


class TestTqdmProgressReporter(unittest.TestCase):

    @patch("core.progress.tqdm")
    def test_file_downloaded_advances_bar(self, mock_tqdm):
        progress = TqdmProgressReporter("cats", total=10)
        progress.page_crawled(2)
        progress.file_downloaded("a.jpg", 1)
        bar = mock_tqdm.return_value
        bar.update.assert_called_once_with(1)
        progress.close()
        bar.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
