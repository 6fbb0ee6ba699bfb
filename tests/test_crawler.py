"""测试定时抓取的去重与隔离."""

from collections.abc import Callable

from conftest import FakeWeb, make_rss

from lares.core.crawler import Crawler
from lares.core.resolver import Resolver
from lares.core.store import Store
from lares.fetcher.remote import RemoteItem
from lares.models.feed import Feed
from lares.models.item import Item

FEED_URL = "https://example.com/feed.xml"


def post_url(i: int) -> str:
    return f"https://example.com/posts/{i}"


def remote(i: int | None, title: str = "") -> RemoteItem:
    return RemoteItem(
        title=title or f"Post {i}",
        author="",
        html="",
        url=post_url(i) if i is not None else None,
        published_at=None,
    )


class TestStageNewItems:
    """测试 stage_new_items."""

    def test_stops_at_first_known_url(self) -> None:
        """遇到已存储的链接后停止扫描."""
        items = [remote(i) for i in range(1, 11)]
        existing = {post_url(i) for i in range(5, 11)}

        staged = Crawler.stage_new_items(items, existing)

        assert [item.url for item in staged] == [post_url(i) for i in range(1, 5)]

    def test_older_unknown_items_after_known_are_ignored(self) -> None:
        """已知条目之后的未知条目也不写入."""
        items = [remote(1), remote(2), remote(3)]
        staged = Crawler.stage_new_items(items, {post_url(2)})
        assert [item.url for item in staged] == [post_url(1)]

    def test_items_without_link_are_skipped(self) -> None:
        """没有链接的条目跳过，不作为停止信号."""
        items = [remote(None, "no link"), remote(1), remote(None, "no link"), remote(2)]
        staged = Crawler.stage_new_items(items, set())
        assert [item.url for item in staged] == [post_url(1), post_url(2)]

    def test_duplicate_links_in_one_round(self) -> None:
        """同一轮中的重复链接只写入一次."""
        staged = Crawler.stage_new_items([remote(1), remote(1), remote(2)], set())
        assert [item.url for item in staged] == [post_url(1), post_url(2)]


class TestCrawlFeed:
    """测试单个 Feed 的抓取."""

    async def test_inserts_only_new_items(
        self, store: Store, resolver: Resolver, web: FakeWeb, sample_feed: Feed
    ) -> None:
        """已有 i5..i10 时只写入 i1..i4."""
        await store.insert_items(
            sample_feed.id, [Item(title=f"Post {i}", url=post_url(i)) for i in range(5, 11)]
        )
        entries = [(f"Post {i}", post_url(i)) for i in range(1, 11)]
        web.add(FEED_URL, make_rss("Blog", FEED_URL, "https://example.com/", entries))

        crawler = Crawler(store, resolver)
        assert await crawler.crawl_feed(sample_feed) == 4
        assert await store.count_items() == 10
        assert await store.item_urls(sample_feed.id) == {post_url(i) for i in range(1, 11)}

        # 再抓一次不会重复写入
        assert await crawler.crawl_feed(sample_feed) == 0
        assert await store.count_items() == 10

    async def test_same_url_in_different_feeds(
        self,
        store: Store,
        resolver: Resolver,
        web: FakeWeb,
        feed_factory: Callable,
        sample_feed: Feed,
    ) -> None:
        """url 只在同一 Feed 内去重."""
        other = await feed_factory("https://mirror.example.com/feed.xml")
        entries = [("Shared", post_url(1))]
        web.add(FEED_URL, make_rss("Blog", FEED_URL, None, entries))
        web.add(other.url, make_rss("Mirror", other.url, None, entries))

        crawler = Crawler(store, resolver)
        await crawler.crawl_feed(sample_feed)
        await crawler.crawl_feed(other)

        assert await store.count_items() == 2


class TestCrawlRound:
    """测试一轮抓取."""

    async def test_failing_feed_does_not_affect_others(
        self,
        store: Store,
        resolver: Resolver,
        web: FakeWeb,
        feed_factory: Callable,
        sample_feed: Feed,
    ) -> None:
        """单个 Feed 失败只影响自己."""
        broken = await feed_factory("https://down.example.com/feed.xml", title="Down")
        not_feed = await feed_factory("https://example.com/page.html", title="Page")
        web.fail(broken.url)
        web.add(not_feed.url, b"<html><body>not a feed</body></html>")
        web.add(FEED_URL, make_rss("Blog", FEED_URL, None, [("Post 1", post_url(1))]))

        summary = await Crawler(store, resolver).crawl()

        assert summary.feeds == 3
        assert summary.succeeded == 1
        assert summary.failed == 2
        assert summary.new_items == 1
        assert await store.item_urls(sample_feed.id) == {post_url(1)}
        assert (await store.get_feed(sample_feed.id)).last_updated is not None
        assert (await store.get_feed(broken.id)).last_updated is None

    async def test_empty_store(self, store: Store, resolver: Resolver) -> None:
        """没有订阅源时正常结束."""
        summary = await Crawler(store, resolver).crawl()
        assert summary.feeds == 0
        assert summary.completed_at is not None
