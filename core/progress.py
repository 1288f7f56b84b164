"""
进度与错误上报

爬虫和下载流水线只通过这里向用户输出进度和错误，
默认实现写入 loguru，CLI 使用带 tqdm 进度条的子类。
"""
from typing import Dict, List, Optional

from loguru import logger
from tqdm import tqdm


class ProgressReporter:
    """进度上报（日志实现）"""

    def __init__(self, target_name: str):
        self.target_name = target_name
        self.last_message: str = ""
        self.errors: List[Dict[str, str]] = []

    def update(self, message: str, *args):
        """更新进度信息"""
        self.last_message = message.format(*args) if args else message
        logger.debug(f"[{self.target_name}] {self.last_message}")

    def page_crawled(self, pages: int):
        self.update("已抓取 {} 页", pages)

    def file_downloaded(self, filename: str, total_downloads: int):
        self.update("下载 {} （共 {} 个）", filename, total_downloads)

    def show_error(self, error: Exception, message: str):
        """上报用户可见的错误（带目标名称）"""
        self.errors.append({"target": self.target_name, "message": message, "error": str(error)})
        logger.error(f"❌ [{self.target_name}] {message}: {error}")

    def close(self):
        pass


class TqdmProgressReporter(ProgressReporter):
    """命令行进度条"""

    def __init__(self, target_name: str, total: Optional[int] = None):
        super().__init__(target_name)
        self.bar = tqdm(total=total, desc=f"下载 {target_name}", unit="file")
        self._pages = 0

    def page_crawled(self, pages: int):
        self._pages = pages
        self.bar.set_postfix(pages=pages)

    def file_downloaded(self, filename: str, total_downloads: int):
        super().file_downloaded(filename, total_downloads)
        self.bar.update(1)
        self.bar.set_postfix(pages=self._pages, file=filename[:30])

    def show_error(self, error: Exception, message: str):
        super().show_error(error, message)
        self.bar.write(f"❌ {message}: {error}")

    def close(self):
        self.bar.close()
