"""定时抓取 - 轮询所有 Feed 并写入新文章."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from lares.core.resolver import Resolver
from lares.core.store import Store
from lares.fetcher.remote import RemoteItem
from lares.models.feed import Feed
from lares.models.item import Item
from lares.utils.concurrency import fan_out

logger = logging.getLogger(__name__)


@dataclass
class CrawlRound:
    """一轮抓取的结果汇总."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    feeds: int = 0
    succeeded: int = 0
    failed: int = 0
    new_items: int = 0


class Crawler:
    """Feed 抓取器."""

    def __init__(
        self,
        store: Store,
        resolver: Resolver,
        concurrency: int | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.concurrency = concurrency

    async def crawl(self) -> CrawlRound:
        """
        执行一轮抓取.

        每个 Feed 一个独立任务，单个 Feed 失败只记录日志，
        不影响同一轮里的其他 Feed。
        """
        summary = CrawlRound()
        feeds = await self.store.list_feeds()
        summary.feeds = len(feeds)
        logger.info(f"开始抓取，共 {len(feeds)} 个订阅源")

        results = await fan_out(
            self.crawl_feed,
            feeds,
            concurrency=self.concurrency,
            label="抓取订阅源",
        )

        for result in results:
            if result.ok:
                summary.succeeded += 1
                summary.new_items += result.value or 0
            else:
                summary.failed += 1

        summary.completed_at = datetime.now(UTC)
        logger.info(
            f"抓取完成: 成功={summary.succeeded}, 失败={summary.failed}, "
            f"新文章={summary.new_items}"
        )
        return summary

    async def crawl_feed(self, feed: Feed) -> int:
        """抓取单个 Feed，返回新增文章数."""
        if feed.id is None:
            msg = f"Feed 尚未保存: {feed.url}"
            raise ValueError(msg)

        existing = await self.store.item_urls(feed.id)
        remote = await self.resolver.fetch_feed(feed.url)

        staged = self.stage_new_items(remote.items, existing)
        inserted = await self.store.insert_items(feed.id, staged)

        if inserted:
            logger.info(f"{feed.title}: 新增 {inserted} 篇文章")
        else:
            logger.debug(f"{feed.title}: 没有新文章")
        return inserted

    @staticmethod
    def stage_new_items(remote_items: list[RemoteItem], existing: set[str]) -> list[Item]:
        """
        挑出需要写入的新文章.

        远程条目按最新在前的顺序扫描：没有链接的跳过；
        遇到已存储的链接就停止，认为之后的都已经见过。
        """
        staged_urls: set[str] = set()
        staged: list[Item] = []

        for remote_item in remote_items:
            if not remote_item.url:
                continue
            if remote_item.url in existing:
                break
            if remote_item.url in staged_urls:
                continue

            staged_urls.add(remote_item.url)
            staged.append(
                Item(
                    title=remote_item.title,
                    author=remote_item.author,
                    html=remote_item.html,
                    url=remote_item.url,
                    created_time=remote_item.published_at or datetime.now(UTC),
                )
            )

        return staged
