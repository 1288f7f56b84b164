"""
数据存储模块（SQLite）

定位：
- 搜索目标（SearchTarget）的持久化，保存计数器和上次完成时间。
- 链接索引（links 表）：记录每个目标已下载的文件名，供存在性检查使用。
- 不负责任务队列（由 DownloadQueue 负责）。
"""
from typing import Optional
import sqlite3
from pathlib import Path
from datetime import datetime
from loguru import logger
from pydantic import ValidationError

from config import config
from core.models import SearchTarget


class Storage:
    """数据存储管理器（SQLite 持久化）"""

    def __init__(self, sqlite_path: Optional[Path] = None):
        self.db_config = config.database
        self._sqlite_path = sqlite_path
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self):
        """连接数据库（创建 SQLite 文件及表结构）"""
        if self._conn is not None:
            return
        path = Path(self._sqlite_path or self.db_config.sqlite_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
            logger.success("Connected to SQLite: {}", path)
        except sqlite3.Error as e:
            logger.error("Failed to connect to SQLite: {}", e)
            self._conn = None

    def _init_schema(self):
        """初始化表结构"""
        if self._conn is None:
            return
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS targets (
                name TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS links (
                target TEXT NOT NULL,
                filename TEXT NOT NULL,
                created_at TEXT,
                PRIMARY KEY (target, filename)
            );
            CREATE INDEX IF NOT EXISTS idx_links_target ON links(target);
        """)
        self._conn.commit()

    def close(self):
        """关闭数据库连接"""
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    # ==================== 搜索目标 ====================

    def save_target(self, target: SearchTarget) -> bool:
        """保存搜索目标（存在则更新）"""
        if self._conn is None:
            return False
        try:
            now = datetime.now().isoformat()
            self._conn.execute(
                """INSERT INTO targets (name, data, created_at, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(name) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at""",
                (target.name, target.model_dump_json(), now, now)
            )
            self._conn.commit()
            logger.debug("Target saved: {}", target.name)
            return True
        except sqlite3.Error as e:
            logger.error("Failed to save target {}: {}", target.name, e)
            return False

    def load_target(self, name: str) -> Optional[SearchTarget]:
        """加载搜索目标，不存在或数据损坏返回 None"""
        if self._conn is None:
            return None
        try:
            row = self._conn.execute("SELECT data FROM targets WHERE name = ?", (name,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load target {}: {}", name, e)
            return None
        if row is None:
            return None
        try:
            return SearchTarget.model_validate_json(row["data"])
        except ValidationError as e:
            logger.warning("Stored target {} is invalid: {}", name, e)
            return None

    def target_exists(self, name: str) -> bool:
        """搜索目标是否存在"""
        if self._conn is None:
            return False
        try:
            row = self._conn.execute("SELECT 1 FROM targets WHERE name = ? LIMIT 1", (name,)).fetchone()
            return row is not None
        except sqlite3.Error as e:
            logger.error("Failed to check target existence: {}", e)
            return False

    def delete_target(self, name: str) -> bool:
        """删除搜索目标及其链接索引"""
        if self._conn is None:
            return False
        try:
            self._conn.execute("DELETE FROM targets WHERE name = ?", (name,))
            self._conn.execute("DELETE FROM links WHERE target = ?", (name,))
            self._conn.commit()
            logger.info("Target deleted: {}", name)
            return True
        except sqlite3.Error as e:
            logger.error("Failed to delete target: {}", e)
            return False

    # ==================== 链接索引 ====================

    def link_exists(self, target: str, filename: str) -> bool:
        """文件名是否已在链接索引中"""
        if self._conn is None:
            return False
        try:
            row = self._conn.execute(
                "SELECT 1 FROM links WHERE target = ? AND filename = ? LIMIT 1", (target, filename)
            ).fetchone()
            return row is not None
        except sqlite3.Error as e:
            logger.error("Failed to check link: {}", e)
            return False

    def add_link(self, target: str, filename: str) -> bool:
        """把文件名加入链接索引（已存在时忽略）"""
        if self._conn is None:
            return False
        try:
            self._conn.execute(
                "INSERT OR IGNORE INTO links (target, filename, created_at) VALUES (?, ?, ?)",
                (target, filename, datetime.now().isoformat())
            )
            self._conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error("Failed to add link {}: {}", filename, e)
            return False

    def clear_links(self, target: str) -> int:
        """清空某个目标的链接索引，返回删除的条数"""
        if self._conn is None:
            return 0
        try:
            cursor = self._conn.execute("DELETE FROM links WHERE target = ?", (target,))
            self._conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            logger.error("Failed to clear links: {}", e)
            return 0

    def get_link_count(self, target: str) -> int:
        """某个目标的链接数"""
        if self._conn is None:
            return 0
        try:
            row = self._conn.execute("SELECT COUNT(*) AS n FROM links WHERE target = ?", (target,)).fetchone()
            return row["n"] if row else 0
        except sqlite3.Error as e:
            logger.error("Failed to count links: {}", e)
            return 0


# 全局存储实例
storage = Storage()
