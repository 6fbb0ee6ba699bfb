"""远程 Feed 解析（RSS / Atom / JSON Feed 等，基于 feedparser）."""

import io
import logging
from calendar import timegm
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import feedparser

from lares.errors import FeedParseError

logger = logging.getLogger(__name__)


@dataclass
class RemoteItem:
    """远程 Feed 中的一条内容."""

    title: str
    author: str
    html: str
    url: str | None
    published_at: datetime | None


class RemoteFeed:
    """解析后的远程 Feed."""

    def __init__(self, url: str, parsed: Any) -> None:
        self.url = url
        self._parsed = parsed

    @classmethod
    def parse(cls, url: str, content: bytes) -> "RemoteFeed":
        """
        将字节解析为 Feed.

        Raises:
            FeedParseError: 内容不是可识别的 Feed 格式
        """
        # 传入文件对象，避免 feedparser 把内容当成 URL 或文件路径
        parsed = feedparser.parse(io.BytesIO(content))
        if not parsed.get("version"):
            reason = parsed.get("bozo_exception") or "未知格式"
            msg = f"不是有效的 Feed ({url}): {reason}"
            raise FeedParseError(msg)
        if parsed.get("bozo"):
            logger.debug(f"Feed 解析警告 ({url}): {parsed.get('bozo_exception')}")
        return cls(url, parsed)

    @property
    def title(self) -> str | None:
        """Feed 自身的标题."""
        return self._parsed.feed.get("title") or None

    @property
    def site_url(self) -> str:
        """第一个与 Feed URL 不同的链接，没有则使用 Feed URL."""
        for link in self._parsed.feed.get("links", []):
            href = link.get("href")
            if href and href != self.url:
                return href
        return self.url

    @property
    def items(self) -> list[RemoteItem]:
        """按 Feed 原始顺序返回条目（通常最新在前）."""
        return [self._to_item(entry) for entry in self._parsed.entries]

    @staticmethod
    def _to_item(entry: Any) -> RemoteItem:
        contents = entry.get("content") or []
        if contents:
            html = contents[0].get("value", "")
        else:
            html = entry.get("summary", "")

        published = entry.get("published_parsed") or entry.get("updated_parsed")
        published_at = (
            datetime.fromtimestamp(timegm(published), UTC)
            if published
            else None
        )

        return RemoteItem(
            title=entry.get("title", ""),
            author=entry.get("author", ""),
            html=html,
            url=entry.get("link") or None,
            published_at=published_at,
        )
