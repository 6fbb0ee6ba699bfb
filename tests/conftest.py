"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from lares.config import Settings
from lares.core.resolver import Resolver
from lares.core.store import Store
from lares.fetcher.http import HttpFetcher
from lares.models.database import create_engine, create_session_factory, create_tables
from lares.models.feed import Feed
from lares.models.group import Group


def make_rss(
    title: str | None,
    url: str,
    site_url: str | None,
    entries: list[tuple[str, str | None]],
) -> bytes:
    """生成 RSS 2.0 文档，entries 为 (标题, 链接) 列表，按给定顺序输出."""
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom"><channel>',
    ]
    if title is not None:
        parts.append(f"<title>{title}</title>")
    parts.append(f'<atom:link href="{url}" rel="self" type="application/rss+xml"/>')
    if site_url is not None:
        parts.append(f"<link>{site_url}</link>")
    for entry_title, link in entries:
        parts.append("<item>")
        parts.append(f"<title>{entry_title}</title>")
        if link is not None:
            parts.append(f"<link>{link}</link>")
        parts.append("<author>someone@example.com</author>")
        parts.append(f"<description>&lt;p&gt;{entry_title}&lt;/p&gt;</description>")
        parts.append("<pubDate>Mon, 06 Jan 2020 10:00:00 GMT</pubDate>")
        parts.append("</item>")
    parts.append("</channel></rss>")
    return "".join(parts).encode()


def make_html(*alternates: str, rel: str = "alternate") -> bytes:
    """生成带 <link rel="alternate"> 的 HTML 页面."""
    links = "".join(
        f'<link rel="{rel}" type="application/rss+xml" href="{href}">' for href in alternates
    )
    return (
        "<!DOCTYPE html><html><head><title>Blog</title>"
        f'<link rel="stylesheet" href="/style.css">{links}'
        "</head><body><p>Hello</p></body></html>"
    ).encode()


@dataclass
class FakeWeb:
    """基于 httpx.MockTransport 的假网站."""

    routes: dict[str, tuple[int, dict[str, str], bytes]] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)

    def add(
        self,
        url: str,
        content: bytes = b"",
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.routes[url] = (status, headers or {}, content)

    def redirect(self, url: str, location: str, status: int = 302) -> None:
        self.add(url, status=status, headers={"Location": location})

    def fail(self, url: str) -> None:
        """请求该 URL 时抛出连接错误."""
        self.failing.add(url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.failing:
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)
        if url not in self.routes:
            return httpx.Response(404, request=request)
        status, headers, content = self.routes[url]
        return httpx.Response(status, headers=headers, content=content, request=request)


@pytest.fixture
def web() -> FakeWeb:
    """创建假网站."""
    return FakeWeb()


@pytest.fixture
def settings() -> Settings:
    """测试用配置."""
    return Settings(database_url="sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture
async def fetcher(web: FakeWeb, settings: Settings) -> AsyncGenerator[HttpFetcher, None]:
    """创建使用假网站的 HTTP 客户端."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(web.handler))
    async with HttpFetcher(settings, client=client) as fetcher:
        yield fetcher


@pytest.fixture
def resolver(fetcher: HttpFetcher) -> Resolver:
    """创建 Feed 解析器."""
    return Resolver(fetcher)


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncGenerator[Store, None]:
    """创建测试用的 SQLite 存储."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'lares.db'}")
    await create_tables(engine)

    yield Store(create_session_factory(engine))

    await engine.dispose()


@pytest.fixture
def feed_factory(store: Store) -> Callable:
    """创建订阅源的工厂函数."""

    async def create(url: str, title: str = "Test Feed") -> Feed:
        return await store.insert_feed(
            Feed(title=title, url=url, site_url="https://example.com")
        )

    return create


@pytest_asyncio.fixture
async def sample_feed(feed_factory: Callable) -> Feed:
    """创建测试用的 Feed."""
    return await feed_factory("https://example.com/feed.xml")


@pytest_asyncio.fixture
async def sample_group(store: Store) -> Group:
    """创建测试用的分组."""
    return await store.create_group("Tech")
