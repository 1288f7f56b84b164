"""
Tumblr 搜索下载器 - 命令行入口

用法:
  python search_crawler.py crawl cats --pages "1-5"
  python search_crawler.py status cats
"""
import asyncio
import signal
import sys
from loguru import logger

from config import config
from core.control import CrawlControl
from cli import create_parser, handle_crawl, handle_status


def setup_logging():
    """配置日志：彩色 stderr + 按大小轮转的文件"""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=config.log.log_level,
        colorize=True
    )

    log_file = config.log.log_dir / config.log.log_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        rotation=config.log.rotation,
        retention=config.log.retention,
        encoding="utf-8",
        level="DEBUG"
    )


def install_signal_handlers(control: CrawlControl):
    """Ctrl+C / SIGTERM 请求协作式取消，正在进行的请求会自然结束"""
    loop = asyncio.get_running_loop()

    def _cancel():
        logger.warning("⚠️  收到中断信号，正在停止...（再按一次强制退出）")
        control.cancel()
        # 第二次信号恢复默认行为
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _cancel)
        except NotImplementedError:
            # Windows 事件循环不支持
            logger.debug(f"无法注册信号处理: {sig}")


async def main(argv=None):
    """主函数 - 子命令模式"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging()

    print("\n" + "=" * 60)
    print("🕷️  Tumblr 搜索下载器")
    print("=" * 60)

    if args.command == 'crawl':
        control = CrawlControl()
        install_signal_handlers(control)
        await handle_crawl(args, control=control)
    elif args.command == 'status':
        await handle_status(args)


def run():
    """console script 入口"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
