"""
已下载检查模块

下载前的两个独立检查，任一命中即跳过下载：
- 目录检查：下载目录中是否有文件名包含候选文件名
- 链接索引检查：Storage 的 links 表中是否有该文件名

多个下载消费者会并发查询同一目录和同一索引，两者各用一把锁。
检查未命中时在索引锁内占用文件名，同一文件同时只有一个消费者下载。
"""
import asyncio
import os
from typing import Set

from loguru import logger

from core.models import SearchTarget
from core.storage import Storage


def filename_from_url(url: str) -> str:
    """URL 最后一段作为文件名"""
    return url.split("/")[-1]


class ExistenceChecker:
    """单个目标、单次爬取的存在性检查"""

    def __init__(self, target: SearchTarget, storage: Storage):
        self.target = target
        self.storage = storage
        self._directory_lock = asyncio.Lock()
        self._index_lock = asyncio.Lock()
        self._in_flight: Set[str] = set()

    async def exists_in_directory(self, url: str) -> bool:
        """下载目录中是否已有包含该文件名的文件"""
        if not self.target.check_directory_for_files:
            return False
        filename = filename_from_url(url)
        if not filename:
            return False
        async with self._directory_lock:
            directory = self.target.download_location()
            if not directory.is_dir():
                return False
            with os.scandir(directory) as entries:
                return any(filename in entry.name for entry in entries if entry.is_file())

    async def exists_in_link_index(self, url: str) -> bool:
        """链接索引中是否已有该文件名"""
        filename = filename_from_url(url)
        if not filename:
            return False
        async with self._index_lock:
            return self.storage.link_exists(self.target.name, filename)

    async def is_present_or_claim(self, url: str) -> bool:
        """
        任一检查命中即认为已下载；否则占用该文件名

        同一文件名在下载完成（register）或失败（release）之前，
        其他消费者的检查都视为已存在。

        Returns:
            True: 已存在或正在被其他消费者下载，调用方应跳过
            False: 已占用，调用方负责下载并 register/release
        """
        filename = filename_from_url(url)
        if not filename:
            return False
        if await self.exists_in_link_index(url) or await self.exists_in_directory(url):
            logger.debug(f"⏭️  已存在，跳过: {filename}")
            return True
        # 目录检查期间可能有其他消费者占用或完成，占用前在索引锁内重查
        async with self._index_lock:
            if filename in self._in_flight or self.storage.link_exists(self.target.name, filename):
                logger.debug(f"⏭️  已存在或正在下载，跳过: {filename}")
                return True
            self._in_flight.add(filename)
        return False

    async def register(self, filename: str) -> bool:
        """下载成功后写入链接索引并释放占用"""
        async with self._index_lock:
            added = self.storage.add_link(self.target.name, filename)
            self._in_flight.discard(filename)
            return added

    async def release(self, filename: str):
        """下载失败后释放占用，后续条目可重试"""
        async with self._index_lock:
            self._in_flight.discard(filename)
