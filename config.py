"""
配置管理模块 - Tumblr 搜索爬虫
统一配置管理，支持 .env 环境变量覆盖
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# 项目根目录
BASE_DIR = Path(__file__).parent

# 已知的图片尺寸标记（与 parsers.search_parser.SIZE_TOKENS 对应）
IMAGE_SIZES = ("raw", "1280", "540", "500", "400", "250", "100", "75sq")
VIDEO_SIZES = (480, 1080)


class SearchConfig(BaseModel):
    """搜索接口配置"""
    base_url: str = Field(default="https://www.tumblr.com", description="Tumblr 站点根URL")
    cookie: Optional[str] = Field(default=None, description="登录后的 Cookie 字符串")
    sort: str = Field(default="top", description="搜索排序方式")
    safe_mode: bool = Field(default=True, description="是否启用安全模式")


class CrawlerConfig(BaseModel):
    """爬虫配置"""
    # 并发控制
    parallel_scans: int = Field(default=4, ge=1, description="并发抓取页面的 worker 数")
    parallel_downloads: int = Field(default=8, ge=1, description="并发下载的消费者数")
    queue_size: int = Field(default=1000, ge=1, description="下载队列容量")
    request_timeout: int = Field(default=60, description="请求超时时间（秒）")

    # 重试配置（仅用于二进制下载的瞬时连接错误）
    max_retries: int = Field(default=3, ge=1, description="最大重试次数")

    # 限速
    limit_connections: bool = Field(default=False, description="是否启用全局限速")
    connections_per_second: float = Field(default=2.0, description="每秒允许的请求数")

    # 代理配置
    proxy: Optional[str] = Field(default=None, description="HTTP 代理地址")

    # User-Agent配置
    rotate_user_agent: bool = Field(default=True, description="是否轮换UA")

    # 分页终止条件：连续 N 个空页后停止（0 表示永不停止）
    max_empty_pages: int = Field(default=3, ge=0, description="连续空页阈值")


class MediaConfig(BaseModel):
    """媒体下载配置"""
    download_dir: Path = Field(default=BASE_DIR / "downloads", description="下载根目录")
    image_size: str = Field(default="1280", description="图片尺寸: raw/1280/540/500/400/250/100/75sq")
    video_size: int = Field(default=1080, description="视频分辨率: 480/1080")
    tumblr_hosts: List[str] = Field(
        default_factory=lambda: ["data.tumblr.com", "media.tumblr.com"],
        description="raw 模式下依次尝试的图片主机"
    )
    enable_preview: bool = Field(default=True, description="记录最近下载的图片/视频路径")

    @field_validator("image_size")
    @classmethod
    def _check_image_size(cls, value: str) -> str:
        value = str(value).lower()
        if value not in IMAGE_SIZES:
            raise ValueError(f"不支持的图片尺寸: {value}，可用: {', '.join(IMAGE_SIZES)}")
        return value

    @field_validator("video_size")
    @classmethod
    def _check_video_size(cls, value: int) -> int:
        if value not in VIDEO_SIZES:
            raise ValueError(f"不支持的视频分辨率: {value}，可用: 480, 1080")
        return value


class DatabaseConfig(BaseModel):
    """数据库配置"""
    sqlite_path: Path = Field(default=BASE_DIR / "data" / "search_crawler.db", description="SQLite 文件路径")


class LogConfig(BaseModel):
    """日志配置"""
    log_level: str = Field(default="INFO", description="日志级别")
    log_dir: Path = Field(default=BASE_DIR / "logs", description="日志目录")
    log_file: str = Field(default="search_crawler.log", description="日志文件名")
    rotation: str = Field(default="100 MB", description="日志轮转大小")
    retention: str = Field(default="30 days", description="日志保留时间")


class Config(BaseModel):
    """全局配置"""
    search: SearchConfig = Field(default_factory=SearchConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    def __init__(self, **data):
        super().__init__(**data)
        # 创建必要的目录
        self._create_directories()

    def _create_directories(self):
        """创建必要的目录"""
        self.media.download_dir.mkdir(parents=True, exist_ok=True)
        self.database.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self.log.log_dir.mkdir(parents=True, exist_ok=True)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


# 从环境变量加载配置
def load_config_from_env() -> Config:
    """从环境变量加载配置"""
    config_data = {
        "search": {
            "base_url": os.getenv("TUMBLR_BASE_URL", "https://www.tumblr.com"),
            "cookie": os.getenv("TUMBLR_COOKIE"),
            "safe_mode": _env_bool("TUMBLR_SAFE_MODE", "true"),
        },
        "crawler": {
            "parallel_scans": int(os.getenv("PARALLEL_SCANS", "4")),
            "parallel_downloads": int(os.getenv("PARALLEL_DOWNLOADS", "8")),
            "request_timeout": int(os.getenv("REQUEST_TIMEOUT", "60")),
            "limit_connections": _env_bool("LIMIT_CONNECTIONS"),
            "connections_per_second": float(os.getenv("CONNECTIONS_PER_SECOND", "2.0")),
            "proxy": os.getenv("HTTP_PROXY_URL") or None,
            "max_empty_pages": int(os.getenv("MAX_EMPTY_PAGES", "3")),
        },
        "media": {
            "image_size": os.getenv("IMAGE_SIZE", "1280"),
            "video_size": int(os.getenv("VIDEO_SIZE", "1080")),
        },
        "log": {
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
    }
    download_dir = os.getenv("DOWNLOAD_DIR")
    if download_dir:
        config_data["media"]["download_dir"] = Path(download_dir)
    sqlite_path = os.getenv("SQLITE_PATH")
    if sqlite_path:
        config_data["database"] = {"sqlite_path": Path(sqlite_path)}
    return Config(**config_data)


# 全局配置实例（默认从环境变量加载）
config = load_config_from_env()
