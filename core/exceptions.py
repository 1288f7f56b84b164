"""
异常定义
"""


class CrawlerError(Exception):
    """爬虫异常基类"""


class AuthenticationRequiredError(CrawlerError):
    """搜索接口要求登录（HTTP 503 或返回登录页）"""


class RateLimitedError(CrawlerError):
    """搜索接口限流（HTTP 429），不会自动重试"""


class QueueClosedError(CrawlerError):
    """下载队列已关闭，不再接受新条目"""
