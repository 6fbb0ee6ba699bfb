"""Feed 订阅源 API."""

from fastapi import APIRouter, Depends, Query, Request

from lares.api.serializers import (
    feed_groups_to_list,
    feed_to_dict,
    parse_before,
)
from lares.config import get_settings
from lares.core.importer import OPMLImporter
from lares.core.resolver import PickFirst, Resolver
from lares.core.store import Store, get_store
from lares.core.subscriptions import SubscriptionService
from lares.fetcher.http import HttpFetcher, get_fetcher

router = APIRouter(prefix="/api/feeds", tags=["feeds"])


def get_resolver(fetcher: HttpFetcher = Depends(get_fetcher)) -> Resolver:
    """获取 Feed 解析器（默认有歧义时拒绝）."""
    return Resolver(fetcher)


def get_subscriptions(
    store: Store = Depends(get_store),
    resolver: Resolver = Depends(get_resolver),
) -> SubscriptionService:
    """获取订阅管理服务."""
    return SubscriptionService(store, resolver)


@router.get("")
async def list_feeds(store: Store = Depends(get_store)) -> dict:
    """获取订阅列表及分组关联."""
    feeds = await store.list_feeds()
    feed_groups = await store.list_feed_groups()
    return {
        "total": len(feeds),
        "feeds": [feed_to_dict(feed) for feed in feeds],
        "feeds_groups": feed_groups_to_list(feed_groups),
    }


@router.post("")
async def add_feed(
    url: str = Query(..., description="Feed 或网页 URL"),
    group: str | None = Query(None, description="加入的分组名称"),
    pick_first: bool = Query(False, description="多个候选时选择第一个"),
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """添加订阅源."""
    feed = await service.add_feed(url, group, policy=PickFirst() if pick_first else None)
    return feed_to_dict(feed)


@router.post("/import")
async def import_opml(
    request: Request,
    store: Store = Depends(get_store),
    resolver: Resolver = Depends(get_resolver),
) -> dict:
    """导入 OPML（请求体为 OPML 文档）."""
    content = await request.body()
    importer = OPMLImporter(
        store,
        resolver,
        concurrency=get_settings().import_concurrency,
    )
    report = await importer.import_document(content)
    return {
        "groups": report.groups,
        "feeds_added": report.feeds_added,
        "feeds_invalid": report.feeds_invalid,
        "feeds_failed": report.feeds_failed,
        "metadata_failed": report.metadata_failed,
    }


@router.get("/{feed_id}")
async def get_feed(feed_id: int, store: Store = Depends(get_store)) -> dict:
    """获取 Feed 详情."""
    return feed_to_dict(await store.get_feed(feed_id))


@router.delete("/{feed_id}")
async def delete_feed(
    feed_id: int,
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """删除订阅源（同时删除文章和分组关联）."""
    feed = await service.delete_feed(feed_id)
    return feed_to_dict(feed)


@router.post("/{feed_id}/crawl")
async def crawl_feed(
    feed_id: int,
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """立即抓取单个订阅源."""
    new_items = await service.crawl_feed(feed_id)
    return {"id": feed_id, "new_items": new_items}


@router.post("/{feed_id}/read")
async def mark_feed_read(
    feed_id: int,
    before: int | None = Query(None, description="Unix 时间戳，只标记此前的文章"),
    store: Store = Depends(get_store),
) -> dict:
    """将订阅源的文章标记为已读."""
    count = await store.mark_feed_read(feed_id, parse_before(before))
    return {"id": feed_id, "marked": count}
