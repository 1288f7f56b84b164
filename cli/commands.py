"""
CLI命令定义（argparse）
"""
import argparse

from config import IMAGE_SIZES, VIDEO_SIZES


def create_parser() -> argparse.ArgumentParser:
    """
    创建命令行参数解析器

    Returns:
        ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog='search_crawler.py',
        description='Tumblr 搜索下载器 (子命令模式)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
示例:
  # 按搜索词爬取（目标不存在时自动创建）
  python search_crawler.py crawl cats

  # 从搜索页URL创建目标
  python search_crawler.py crawl "https://www.tumblr.com/search/cats"

  # 只抓取指定页码，下载原图
  python search_crawler.py crawl cats --pages "1,3,5-8" --image-size raw

  # 查看 / 清除目标状态
  python search_crawler.py status cats
  python search_crawler.py status cats --clear
        '''
    )

    # 创建子命令
    subparsers = parser.add_subparsers(dest='command', help='子命令', required=True)

    # ============================================================================
    # 子命令: crawl - 爬取一个搜索目标
    # ============================================================================
    parser_crawl = subparsers.add_parser('crawl', help='爬取搜索结果并下载图片/视频')
    parser_crawl.add_argument('target', type=str, help='搜索词或搜索页URL')
    parser_crawl.add_argument('--pages', type=str, default=None,
                              help='指定页码，如 "1,3,5-8"（默认：条带遍历全部页）')
    parser_crawl.add_argument('--tags', type=str, default=None,
                              help='标签过滤，逗号分隔（仅记录）')
    parser_crawl.add_argument('--parallel-scans', type=int, default=None,
                              help='并发抓取页面的 worker 数')
    parser_crawl.add_argument('--parallel-downloads', type=int, default=None,
                              help='并发下载数')
    parser_crawl.add_argument('--force-rescan', action='store_true',
                              help='忽略上次的进度，全量扫描')
    parser_crawl.add_argument('--image-size', type=str, default=None, choices=IMAGE_SIZES,
                              help='图片尺寸')
    parser_crawl.add_argument('--video-size', type=int, default=None, choices=VIDEO_SIZES,
                              help='视频分辨率')
    parser_crawl.add_argument('--skip-gif', action='store_true', help='跳过 gif')
    parser_crawl.add_argument('--force-size', action='store_true',
                              help='下载前强制改写图片尺寸')
    parser_crawl.add_argument('--no-photos', dest='download_photo', action='store_false',
                              help='不下载图片')
    parser_crawl.add_argument('--no-videos', dest='download_video', action='store_false',
                              help='不下载视频')
    parser_crawl.add_argument('--limit-connections', action='store_true',
                              help='启用全局限速')
    parser_crawl.add_argument('--download-dir', type=str, default=None,
                              help='下载根目录')

    # ============================================================================
    # 子命令: status - 查看目标状态
    # ============================================================================
    parser_status = subparsers.add_parser('status', help='查看搜索目标的统计信息')
    parser_status.add_argument('target', type=str, help='搜索词')
    parser_status.add_argument('--clear', action='store_true', help='删除目标状态和链接索引')

    return parser
