"""HTTP 抓取客户端 - 手动处理重定向."""

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import httpx

from lares.config import Settings, get_settings
from lares.errors import (
    MissingLocationHeader,
    TooManyRedirections,
    TransportError,
    UnexpectedStatusCode,
)

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """一次请求的结果，url 为重定向之后实际返回内容的地址."""

    url: str
    content: bytes


class HttpFetcher:
    """
    只做 GET 的 HTTP 客户端.

    重定向由本类逐跳处理（httpx 自身的重定向关闭），
    每一跳都把 Location 解析到当前 URL 上再请求，不做缓存也不重试。
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.max_redirects = settings.max_redirects
        self.headers = {
            "User-Agent": settings.user_agent,
            "Content-Length": "0",
        }
        self._client = client or httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            follow_redirects=False,
        )

    async def close(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get(self, url: str) -> bytes:
        """请求 URL 并返回响应体."""
        return (await self.fetch(url)).content

    async def fetch(self, url: str) -> FetchResult:
        """
        请求 URL，返回响应体和重定向后的最终 URL.

        Raises:
            TooManyRedirections: 重定向超过 max_redirects 次
            MissingLocationHeader: 3xx 响应没有 Location
            UnexpectedStatusCode: 其他非 2xx 状态码
            TransportError: 网络层错误
        """
        current = url
        redirections = 0

        while True:
            try:
                response = await self._client.get(
                    current,
                    headers=self.headers,
                    follow_redirects=False,
                )
            except httpx.HTTPError as e:
                msg = f"请求失败 {current}: {e}"
                raise TransportError(msg) from e

            if response.is_success:
                return FetchResult(current, response.content)

            if not 300 <= response.status_code < 400:
                raise UnexpectedStatusCode(current, response.status_code)

            if redirections >= self.max_redirects:
                raise TooManyRedirections(url, self.max_redirects)
            redirections += 1

            location = response.headers.get("Location")
            if not location:
                raise MissingLocationHeader(current)

            # 相对地址基于当前 URL 解析，绝对地址直接替换
            next_url = str(httpx.URL(current).join(location))
            logger.debug(f"重定向 [{redirections}/{self.max_redirects}] {current} -> {next_url}")
            current = next_url


async def get_fetcher() -> AsyncGenerator[HttpFetcher, None]:
    """获取 HTTP 客户端（用于依赖注入），请求结束后关闭."""
    async with HttpFetcher() as fetcher:
        yield fetcher
