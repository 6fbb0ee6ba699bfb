"""定时任务定义."""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from lares.config import Settings

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def crawl_task(settings: Settings) -> None:
    """抓取任务：轮询所有订阅源并写入新文章."""
    from lares.core.crawler import Crawler
    from lares.core.resolver import Resolver
    from lares.core.store import get_store
    from lares.fetcher.http import HttpFetcher

    logger.info("开始抓取任务...")

    try:
        async with HttpFetcher(settings) as fetcher:
            crawler = Crawler(
                get_store(),
                Resolver(fetcher),
                concurrency=settings.crawl_concurrency,
            )
            summary = await crawler.crawl()
            logger.info(
                f"抓取任务完成: 订阅源={summary.feeds}, 成功={summary.succeeded}, "
                f"失败={summary.failed}, 新文章={summary.new_items}"
            )
    except Exception as e:
        # 单轮失败不影响后续调度
        logger.exception(f"抓取任务失败: {e}")


def create_scheduler(settings: Settings) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    global _scheduler

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        crawl_task,
        "interval",
        minutes=settings.crawl_interval_minutes,
        args=[settings],
        id="crawl_task",
        name="订阅源抓取",
        coalesce=True,
        max_instances=1,
        replace_existing=True,
    )

    if settings.crawl_on_startup:
        # 启动时立即执行一次
        _scheduler.add_job(
            crawl_task,
            "date",  # 一次性任务
            args=[settings],
            id="crawl_task_initial",
            name="初始抓取",
        )

    _scheduler.start()
    logger.info(
        f"定时任务调度器已启动，抓取间隔: {settings.crawl_interval_minutes} 分钟"
    )

    return _scheduler


async def shutdown_scheduler() -> None:
    """关闭定时任务调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
        _scheduler = None


async def runloop(settings: Settings) -> None:
    """不启动 Web 服务，只运行定时抓取，直到进程结束."""
    from lares.models.database import init_db

    await init_db(settings.database_url)
    create_scheduler(settings)
    await asyncio.Event().wait()
