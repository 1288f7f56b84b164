"""
数据模型模块

- PostType: 帖子类型
- CrawlItem: 爬取到的媒体条目（创建后不可变）
- SearchTarget: 搜索目标的配置与统计（由外部保存）
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PostType(str, Enum):
    """帖子类型"""
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"
    CONVERSATION = "conversation"
    QUOTE = "quote"
    LINK = "link"
    PHOTO_META = "photo_meta"
    VIDEO_META = "video_meta"
    AUDIO_META = "audio_meta"


def new_synthetic_id() -> str:
    """搜索结果不暴露稳定的帖子ID，为每个条目生成一个"""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CrawlItem:
    post_type: PostType
    url: str
    synthetic_id: str = field(default_factory=new_synthetic_id)
    post_date: Optional[datetime] = None


# 发现计数字段，与 PostType 一一对应
DISCOVERED_COUNTERS = {
    PostType.PHOTO: "photos",
    PostType.VIDEO: "videos",
    PostType.AUDIO: "audios",
    PostType.TEXT: "texts",
    PostType.CONVERSATION: "conversations",
    PostType.QUOTE: "quotes",
    PostType.LINK: "number_of_links",
    PostType.PHOTO_META: "photo_metas",
    PostType.VIDEO_META: "video_metas",
    PostType.AUDIO_META: "audio_metas",
}


class SearchTarget(BaseModel):
    """
    搜索目标（TargetState）

    保存一个搜索词的爬取配置、计数器和进度，由 Storage 持久化。
    计数器在一次爬取过程中只增不减。
    """
    name: str = Field(description="搜索词")
    url: str = Field(default="", description="搜索页面URL")
    location: Path = Field(default=Path("downloads"), description="下载根目录")

    # 爬取范围
    page_size: int = Field(default=100, description="每页条目数（1-100）")
    download_pages: str = Field(default="", description="指定页码，如 1,3,5-8")
    tags: str = Field(default="", description="标签过滤（逗号分隔，仅记录）")

    # 类型开关
    download_photo: bool = Field(default=True, description="下载图片")
    download_video: bool = Field(default=True, description="下载视频")
    download_audio: bool = Field(default=False, description="下载音频")
    skip_gif: bool = Field(default=False, description="跳过 gif")
    force_size: bool = Field(default=False, description="下载前强制改写图片尺寸")
    check_directory_for_files: bool = Field(default=True, description="下载前检查目录中是否已有同名文件")

    # 增量扫描
    force_rescan: bool = Field(default=False, description="强制全量扫描")
    last_id: int = Field(default=0, description="上次看到的最大帖子ID")

    # 发现计数
    total_count: int = 0
    photos: int = 0
    videos: int = 0
    audios: int = 0
    texts: int = 0
    conversations: int = 0
    quotes: int = 0
    number_of_links: int = 0
    photo_metas: int = 0
    video_metas: int = 0
    audio_metas: int = 0

    # 下载计数
    downloaded_photos: int = 0
    downloaded_videos: int = 0
    downloaded_audios: int = 0
    downloaded_images: int = 0
    progress: int = 0

    # 重复计数
    duplicate_photos: int = 0
    duplicate_videos: int = 0
    duplicate_audios: int = 0

    last_complete_crawl: Optional[datetime] = None
    last_downloaded_photo: Optional[str] = None
    last_downloaded_video: Optional[str] = None

    @field_validator("page_size")
    @classmethod
    def _clamp_page_size(cls, value: int) -> int:
        return value if 1 <= value <= 100 else 100

    @classmethod
    def from_url(cls, url: str, location: Path, **kwargs) -> "SearchTarget":
        """
        从搜索URL创建目标

        Args:
            url: 形如 https://www.tumblr.com/search/<name> 的URL
            location: 下载根目录

        Returns:
            SearchTarget 实例
        """
        if url.startswith("http://"):
            url = "https://" + url[len("http://"):]
        parts = url.split("/")
        if len(parts) < 5 or not parts[4]:
            raise ValueError(f"无法从URL解析搜索词: {url}")
        name = parts[4]
        return cls(name=name, url=url[:len(name) + 30], location=location, **kwargs)

    def download_location(self) -> Path:
        """目标的下载目录"""
        return Path(self.location) / self.name

    def tag_list(self) -> List[str]:
        """解析标签列表"""
        if not self.tags or not self.tags.strip():
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]
