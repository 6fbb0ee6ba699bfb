"""测试 HttpFetcher 的重定向处理."""

import pytest
from conftest import FakeWeb

from lares.errors import (
    MissingLocationHeader,
    TooManyRedirections,
    TransportError,
    UnexpectedStatusCode,
)
from lares.fetcher.http import HttpFetcher


def chain(web: FakeWeb, hops: int) -> str:
    """构造 hops 次重定向后返回 200 的链，返回起始 URL."""
    for i in range(hops):
        web.redirect(f"https://example.com/hop/{i}", f"https://example.com/hop/{i + 1}")
    web.add(f"https://example.com/hop/{hops}", b"final body")
    return "https://example.com/hop/0"


class TestRedirects:
    """测试重定向链."""

    async def test_success_without_redirect(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """2xx 直接返回响应体."""
        web.add("https://example.com/feed.xml", b"<rss/>")
        assert await fetcher.get("https://example.com/feed.xml") == b"<rss/>"

    async def test_five_hops_succeed(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """5 次重定向后返回最终响应体."""
        start = chain(web, 5)
        assert await fetcher.get(start) == b"final body"
        assert len(web.requests) == 6

    async def test_six_hops_fail(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """第 6 次重定向时失败."""
        start = chain(web, 6)
        with pytest.raises(TooManyRedirections):
            await fetcher.get(start)

    async def test_relative_location_resolved_against_current_url(
        self, web: FakeWeb, fetcher: HttpFetcher
    ) -> None:
        """相对 Location 基于当前 URL 解析."""
        web.redirect("https://example.com/blog/feed", "atom.xml")
        web.redirect("https://example.com/blog/atom.xml", "/final.xml", status=301)
        web.add("https://example.com/final.xml", b"ok")

        assert await fetcher.get("https://example.com/blog/feed") == b"ok"
        assert [str(r.url) for r in web.requests] == [
            "https://example.com/blog/feed",
            "https://example.com/blog/atom.xml",
            "https://example.com/final.xml",
        ]

    async def test_absolute_location_replaces_url(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """绝对 Location 直接替换 URL."""
        web.redirect("https://example.com/feed", "https://other.example.org/rss")
        web.add("https://other.example.org/rss", b"moved")
        assert await fetcher.get("https://example.com/feed") == b"moved"

    async def test_fetch_returns_final_url(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """fetch 返回重定向之后的 URL."""
        web.redirect("http://example.com/", "https://example.com/blog/")
        web.add("https://example.com/blog/", b"page")

        result = await fetcher.fetch("http://example.com/")

        assert result.url == "https://example.com/blog/"
        assert result.content == b"page"

    async def test_missing_location_header(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """3xx 缺少 Location 时失败."""
        web.add("https://example.com/broken", status=302)
        with pytest.raises(MissingLocationHeader):
            await fetcher.get("https://example.com/broken")


class TestErrors:
    """测试错误状态."""

    async def test_unexpected_status_code(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """非 2xx/3xx 状态码失败并带上状态码."""
        web.add("https://example.com/gone", status=410)
        with pytest.raises(UnexpectedStatusCode) as exc_info:
            await fetcher.get("https://example.com/gone")
        assert exc_info.value.status_code == 410

    async def test_connection_error_is_transport_error(
        self, web: FakeWeb, fetcher: HttpFetcher
    ) -> None:
        """网络错误包装为 TransportError."""
        web.fail("https://down.example.com/feed")
        with pytest.raises(TransportError):
            await fetcher.get("https://down.example.com/feed")


class TestHeaders:
    """测试请求头."""

    async def test_identification_headers(self, web: FakeWeb, fetcher: HttpFetcher) -> None:
        """每次请求都带 User-Agent 和 Content-Length: 0."""
        web.redirect("https://example.com/a", "/b")
        web.add("https://example.com/b", b"ok")

        await fetcher.get("https://example.com/a")

        for request in web.requests:
            assert request.headers["User-Agent"].startswith("LaresBot/")
            assert "(+https://" in request.headers["User-Agent"]
            assert request.headers["Content-Length"] == "0"
