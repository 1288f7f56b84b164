"""
解析器模块

- SearchPageParser: 搜索结果页解析器（正则提取图片/视频链接）
"""
from parsers.search_parser import SearchPageParser

__all__ = ['SearchPageParser']
