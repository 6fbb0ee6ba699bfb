"""Feed 解析器 - 把任意 URL 解析为 Feed 或候选 Feed 列表."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from lares.errors import AmbiguousFeedError, FeedParseError, NoFeedFound
from lares.fetcher.http import HttpFetcher
from lares.fetcher.remote import RemoteFeed
from lares.utils.html_parser import find_rel_alternates

logger = logging.getLogger(__name__)


class SelectionPolicy(Protocol):
    """多个候选 Feed 时的选择策略."""

    async def select(self, url: str, candidates: list[str]) -> str | None:
        """返回选中的候选 URL，None 表示不做选择."""
        ...


class RejectOnAmbiguity:
    """有歧义时不做选择（默认策略，适合无人值守）."""

    async def select(self, url: str, candidates: list[str]) -> str | None:
        return None


class PickFirst:
    """总是选择文档中的第一个候选."""

    async def select(self, url: str, candidates: list[str]) -> str | None:
        return candidates[0] if candidates else None


PromptCallback = Callable[[str, list[str]], str | None | Awaitable[str | None]]


class PromptSelection:
    """交给调用方回调选择（例如交互式提示）."""

    def __init__(self, callback: PromptCallback) -> None:
        self.callback = callback

    async def select(self, url: str, candidates: list[str]) -> str | None:
        choice = self.callback(url, candidates)
        if inspect.isawaitable(choice):
            choice = await choice
        return choice


class Resolver:
    """
    Feed 解析器.

    先尝试把 URL 的内容当作 Feed 解析；失败时把内容当作 HTML，
    查找 rel="alternate" 链接作为候选。候选的取舍由 SelectionPolicy 决定：
    没有候选时失败，只有一个时自动解析，多个时交给策略。
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        policy: SelectionPolicy | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.policy: SelectionPolicy = policy or RejectOnAmbiguity()

    async def fetch_feed(self, url: str) -> RemoteFeed:
        """
        抓取并解析 Feed，不做候选发现.

        Raises:
            TransportError: 请求失败
            FeedParseError: 内容不是 Feed
        """
        content = await self.fetcher.get(url)
        return await self._parse(url, content)

    async def try_resolve(self, url: str) -> RemoteFeed | list[str]:
        """返回解析后的 Feed，或者页面中发现的候选 URL 列表."""
        result = await self.fetcher.fetch(url)
        try:
            return await self._parse(url, result.content)
        except FeedParseError as e:
            logger.debug(f"{url} 不是 Feed，尝试查找候选: {e}")

        # 相对地址基于重定向后的页面地址解析
        candidates = find_rel_alternates(result.content, base_url=result.url)
        logger.info(f"{url} 不是 Feed，找到 {len(candidates)} 个候选")
        return candidates

    async def resolve(self, url: str, policy: SelectionPolicy | None = None) -> RemoteFeed:
        """
        解析 URL 为 Feed.

        Raises:
            NoFeedFound: 不是 Feed 且没有候选
            AmbiguousFeedError: 多个候选且策略未做选择
        """
        result = await self.try_resolve(url)
        if isinstance(result, RemoteFeed):
            return result
        return await self.select_candidate(url, result, policy)

    async def select_candidate(
        self,
        url: str,
        candidates: list[str],
        policy: SelectionPolicy | None = None,
    ) -> RemoteFeed:
        """按候选数量和策略确定最终的 Feed."""
        if not candidates:
            raise NoFeedFound(url)

        if len(candidates) == 1:
            logger.info(f"{url} 不是 Feed，自动使用唯一候选: {candidates[0]}")
            return await self.fetch_feed(candidates[0])

        choice = await (policy or self.policy).select(url, candidates)
        if choice is None or choice not in candidates:
            raise AmbiguousFeedError(url, candidates)

        logger.info(f"{url} 不是 Feed，选择候选: {choice}")
        return await self.fetch_feed(choice)

    async def _parse(self, url: str, content: bytes) -> RemoteFeed:
        # feedparser 是同步库，放到线程池中执行
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, RemoteFeed.parse, url, content)
