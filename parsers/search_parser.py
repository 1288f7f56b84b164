"""
搜索结果页解析器

搜索接口返回的内容当作不透明文本处理，用正则匹配其中的媒体链接：
- 图片：media.tumblr.com 上的 jpg/png/gif，过滤头像和预览图
- 视频：/video_file/ 链接，按目标分辨率改写
"""
import re
from typing import List, Optional
from urllib.parse import urlparse

from loguru import logger

from config import MediaConfig
from core.models import CrawlItem, PostType, SearchTarget

PHOTO_PATTERN = re.compile(r'"(http[^"\s]*media\.tumblr\.com[^"\s]*(?:jpg|png|gif))"')
VIDEO_PATTERN = re.compile(r'"(http[^"\s]*\.com/video_file/[^"\s]*)"')

# 尺寸标记改写表，按顺序逐条应用
SIZE_TOKENS = ("_raw", "_1280", "_540", "_500", "_400", "_250", "_100", "_75sq")
SIZE_RULES = tuple((token, re.compile(re.escape(token) + r"(?![0-9A-Za-z])")) for token in SIZE_TOKENS)

# raw 模式下替换路径中的第一个数字尺寸
IMAGE_DIMENSION = re.compile(r"_\d+")

LOGIN_MARKER = '<div class="signup_view account login"'

VIDEO_HOST = "https://vt.tumblr.com/"


class SearchPageParser:
    """
    搜索结果页解析器

    Example:
        parser = SearchPageParser(config.media, target)
        items = parser.parse(document, target.tag_list())
    """

    def __init__(self, media_config: MediaConfig, target: SearchTarget):
        self.media_config = media_config
        self.target = target

    def parse(self, document: Optional[str], tags: Optional[List[str]] = None) -> List[CrawlItem]:
        """
        解析一页内容

        Args:
            document: 页面内容
            tags: 标签过滤（仅记录，不对抓取内容生效）

        Returns:
            条目列表，空页或格式异常返回 []
        """
        if not document or not isinstance(document, str):
            return []
        if tags:
            logger.debug(f"标签过滤（仅记录）: {', '.join(tags)}")

        # JSON 中的斜杠转义为 \/
        document = document.replace("\\/", "/")
        items = []
        if self.target.download_photo:
            items.extend(self.parse_photos(document))
        if self.target.download_video:
            items.extend(self.parse_videos(document))
        return items

    def parse_photos(self, document: str) -> List[CrawlItem]:
        """提取图片链接"""
        items = []
        for match in PHOTO_PATTERN.finditer(document):
            image_url = match.group(1)
            if "avatar" in image_url or "previews" in image_url:
                continue
            if self.target.skip_gif and image_url.endswith(".gif"):
                continue
            image_url = self.resize_image_url(image_url)
            items.append(CrawlItem(PostType.PHOTO, image_url))
        return items

    def parse_videos(self, document: str) -> List[CrawlItem]:
        """提取视频链接"""
        items = []
        for match in VIDEO_PATTERN.finditer(document):
            video_url = self.rewrite_video_url(match.group(1))
            if video_url:
                items.append(CrawlItem(PostType.VIDEO, video_url))
        return items

    def resize_image_url(self, image_url: str) -> str:
        """把已知尺寸标记改写为配置的尺寸，没有标记的URL原样返回"""
        replacement = "_" + self.media_config.image_size
        for _, pattern in SIZE_RULES:
            image_url = pattern.sub(replacement, image_url)
        return image_url

    def rewrite_video_url(self, video_url: str) -> Optional[str]:
        """
        按分辨率改写视频链接

        1080: 去掉 /480 并追加 .mp4
        480: 换到 vt.tumblr.com，只保留最后一段路径
        """
        stripped = video_url.replace("/480", "")
        if self.media_config.video_size == 1080:
            return stripped + ".mp4"
        if self.media_config.video_size == 480:
            return VIDEO_HOST + stripped.split("/")[-1] + "_480.mp4"
        return None

    def build_raw_image_url(self, url: str, host: str) -> str:
        """
        raw 模式下构造原图URL

        把路径中的第一个数字尺寸替换为 _raw，并换成指定主机；
        非 raw 模式原样返回。
        """
        if self.media_config.image_size != "raw":
            return url
        path = urlparse(url).path.lstrip("/")
        path = IMAGE_DIMENSION.sub("_raw", path, count=1)
        return f"https://{host}/{path}"

    @staticmethod
    def is_logged_in(document: str) -> bool:
        """返回登录页时视为未登录"""
        return LOGIN_MARKER not in document
