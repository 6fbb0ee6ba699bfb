"""订阅管理 - 添加/删除订阅源、分组维护."""

import logging

from lares.core.crawler import Crawler
from lares.core.resolver import Resolver, SelectionPolicy
from lares.core.store import Store
from lares.errors import FeedExistsError, FeedParseError
from lares.fetcher.remote import RemoteFeed
from lares.models.feed import Feed
from lares.models.group import Group

logger = logging.getLogger(__name__)


class SubscriptionService:
    """订阅管理服务."""

    def __init__(self, store: Store, resolver: Resolver) -> None:
        self.store = store
        self.resolver = resolver

    async def add_feed(
        self,
        url: str,
        group: str | None = None,
        policy: SelectionPolicy | None = None,
    ) -> Feed:
        """
        添加订阅源.

        URL 不是 Feed 时会在页面中查找候选，已订阅的候选会被排除。
        指定 group 时分组必须已存在。

        Raises:
            FeedExistsError: URL 已订阅
            FeedParseError: Feed 没有标题
            NotFoundError: 分组不存在
            PolicyError: 无法确定候选
        """
        if await self.store.find_feed(url) is not None:
            msg = f"Feed 已存在: {url}"
            raise FeedExistsError(msg)

        target = await self.store.get_group_by_title(group) if group else None

        result = await self.resolver.try_resolve(url)
        if isinstance(result, RemoteFeed):
            remote = result
        else:
            candidates = [c for c in result if await self.store.find_feed(c) is None]
            if len(candidates) < len(result):
                logger.info(f"排除 {len(result) - len(candidates)} 个已订阅的候选")
            remote = await self.resolver.select_candidate(url, candidates, policy)

        if remote.url != url and await self.store.find_feed(remote.url) is not None:
            msg = f"Feed 已存在: {remote.url}"
            raise FeedExistsError(msg)

        if not remote.title:
            msg = f"Feed 没有标题: {remote.url}"
            raise FeedParseError(msg)

        feed = await self.store.insert_feed(
            Feed(title=remote.title, url=remote.url, site_url=remote.site_url)
        )
        logger.info(f"已添加订阅源: {feed.url}")

        if target is not None and target.id is not None and feed.id is not None:
            await self.store.add_feed_to_group(target.id, feed.id)
            logger.info(f"订阅源已加入分组 {target.title}")
            feed = await self.store.get_feed(feed.id)

        return feed

    async def delete_feed(self, feed_id: int) -> Feed:
        """删除订阅源及其文章、分组关联."""
        return await self.store.delete_feed(feed_id)

    async def crawl_feed(self, feed_id: int) -> int:
        """立即抓取单个订阅源，返回新增文章数."""
        feed = await self.store.get_feed(feed_id)
        return await Crawler(self.store, self.resolver).crawl_feed(feed)

    async def create_group(self, name: str) -> Group:
        group = await self.store.create_group(name)
        logger.info(f"已添加分组: {name}")
        return group

    async def add_feed_to_group(self, feed_id: int, group_name: str) -> None:
        """将订阅源加入分组."""
        group = await self.store.get_group_by_title(group_name)
        feed = await self.store.get_feed(feed_id)
        await self.store.add_feed_to_group(group.id, feed.id)  # type: ignore[arg-type]

    async def remove_feed_from_group(self, feed_id: int, group_name: str) -> None:
        """将订阅源移出分组."""
        group = await self.store.get_group_by_title(group_name)
        await self.store.remove_feed_from_group(group.id, feed_id)  # type: ignore[arg-type]

    async def delete_group(self, name: str, orphan_feeds: bool = False) -> Group:
        """删除分组，仍有订阅源时需要 orphan_feeds=True."""
        group = await self.store.get_group_by_title(name)
        return await self.store.delete_group(group.id, orphan_feeds=orphan_feeds)  # type: ignore[arg-type]

    async def show_group(self, name: str) -> tuple[Group, list[Feed]]:
        """获取分组及其订阅源."""
        group = await self.store.get_group_by_title(name)
        return group, await self.store.group_feeds(group.id)  # type: ignore[arg-type]
