"""远程抓取模块."""

from lares.fetcher.http import FetchResult, HttpFetcher
from lares.fetcher.remote import RemoteFeed, RemoteItem

__all__ = [
    "FetchResult",
    "HttpFetcher",
    "RemoteFeed",
    "RemoteItem",
]
