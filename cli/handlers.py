"""
CLI命令处理函数
"""
from pathlib import Path
from typing import Any, Dict, Optional
from loguru import logger

from config import Config, config as default_config
from core.control import CrawlControl
from core.models import SearchTarget
from core.progress import TqdmProgressReporter
from core.storage import Storage, storage as default_storage
from spiders.search_spider import TumblrSearchCrawler, range_to_sequence


def build_config(args, base: Optional[Config] = None) -> Config:
    """在全局配置的副本上应用命令行参数"""
    run_config = (base or default_config).model_copy(deep=True)

    if args.parallel_scans:
        run_config.crawler.parallel_scans = args.parallel_scans
    if args.parallel_downloads:
        run_config.crawler.parallel_downloads = args.parallel_downloads
    if args.limit_connections:
        run_config.crawler.limit_connections = True
    if args.image_size:
        run_config.media.image_size = args.image_size
    if args.video_size:
        run_config.media.video_size = args.video_size
    if args.download_dir:
        run_config.media.download_dir = Path(args.download_dir)

    return run_config


def resolve_target(text: str, store: Storage, location: Path) -> SearchTarget:
    """
    加载已保存的目标，不存在时新建

    Args:
        text: 搜索词或搜索页URL
        store: 存储
        location: 新目标的下载根目录
    """
    if text.startswith(("http://", "https://")):
        fresh = SearchTarget.from_url(text, location)
    else:
        fresh = SearchTarget(name=text, url=f"https://www.tumblr.com/search/{text}", location=location)

    existing = store.load_target(fresh.name)
    if existing:
        logger.info(f"📂 加载已保存的目标: {existing.name}")
        return existing

    logger.info(f"🆕 新建目标: {fresh.name}")
    return fresh


def apply_target_options(target: SearchTarget, args):
    """命令行开关写入目标（只覆盖显式给出的选项）"""
    if args.pages is not None:
        target.download_pages = args.pages
    if args.tags is not None:
        target.tags = args.tags
    if args.force_rescan:
        target.force_rescan = True
    if args.skip_gif:
        target.skip_gif = True
    if args.force_size:
        target.force_size = True
    if not args.download_photo:
        target.download_photo = False
    if not args.download_video:
        target.download_video = False
    if args.download_dir:
        target.location = Path(args.download_dir)


async def handle_crawl(
    args,
    control: Optional[CrawlControl] = None,
    store: Optional[Storage] = None,
    base_config: Optional[Config] = None
) -> Optional[Dict[str, Any]]:
    """处理 crawl 子命令"""
    print(f"\n📌 命令: 爬取搜索结果")
    print(f"目标: {args.target}")

    if args.pages:
        try:
            range_to_sequence(args.pages)
        except ValueError:
            logger.error(f"❌ 页码格式错误: {args.pages}（示例: 1,3,5-8）")
            return None

    run_config = build_config(args, base_config)
    store = store or default_storage
    store.connect()
    try:
        try:
            target = resolve_target(args.target, store, run_config.media.download_dir)
        except ValueError as e:
            logger.error(f"❌ {e}")
            return None
        apply_target_options(target, args)

        progress = TqdmProgressReporter(target.name, total=target.total_count or None)
        try:
            async with TumblrSearchCrawler(run_config, target, store) as crawler:
                summary = await crawler.crawl(progress=progress, control=control)
        finally:
            progress.close()

        print_statistics(summary, target)
        return summary
    finally:
        store.close()


def print_statistics(summary: Dict[str, Any], target: SearchTarget):
    """输出统计信息"""
    print("\n" + "=" * 60)
    print(f"📊 爬取统计: {target.name}")
    print(f"  抓取页数: {summary['pages_crawled']}")
    print(f"  发现条目: {summary['items_found']} (去重后 {summary['total_count']})")
    print(f"  重复: 图片 {summary['duplicate_photos']} / 视频 {summary['duplicate_videos']} "
          f"/ 音频 {summary['duplicate_audios']}")
    print(f"  已下载: {summary['total_downloads']} (图片 {summary['photos']}, 视频 {summary['videos']})")
    print(f"  已存在跳过: {summary['skipped']}")
    print(f"  下载失败: {summary['failed']}")
    if summary['cancelled']:
        print("  ⚠️  已取消，本次不记录完成时间")
    print("=" * 60)


async def handle_status(args, store: Optional[Storage] = None):
    """处理 status 子命令"""
    store = store or default_storage

    print(f"\n📌 命令: 查看目标状态")
    print(f"目标: {args.target}")
    store.connect()
    try:
        if args.clear:
            if store.target_exists(args.target):
                store.delete_target(args.target)
                print("✅ 目标状态和链接索引已清除")
            else:
                print("ℹ️  没有找到目标")
            return

        target = store.load_target(args.target)
        if not target:
            print("ℹ️  没有找到目标")
            return

        print("\n" + "=" * 60)
        print("📂 目标信息:")
        print(f"  URL: {target.url}")
        print(f"  下载目录: {target.download_location()}")
        print(f"  指定页码: {target.download_pages or '全部'}")
        print(f"  上次完成: {target.last_complete_crawl or 'N/A'}")
        print(f"  进度: {target.progress}%")

        print("\n📊 统计信息:")
        print(f"  条目总数: {target.total_count}")
        print(f"  图片: {target.photos} (已下载 {target.downloaded_photos}, 重复 {target.duplicate_photos})")
        print(f"  视频: {target.videos} (已下载 {target.downloaded_videos}, 重复 {target.duplicate_videos})")
        print(f"  音频: {target.audios} (已下载 {target.downloaded_audios}, 重复 {target.duplicate_audios})")
        print(f"  链接索引: {store.get_link_count(target.name)}")
        print("=" * 60)
    finally:
        store.close()
