"""
爬虫模块

- TumblrSearchCrawler: 搜索结果分页抓取 + 总调度
- MediaPipeline: 媒体下载流水线
"""
from spiders.media_pipeline import MediaPipeline, DownloadOutcome
from spiders.search_spider import TumblrSearchCrawler, range_to_sequence

__all__ = [
    'MediaPipeline',
    'DownloadOutcome',
    'TumblrSearchCrawler',
    'range_to_sequence',
]
