"""分组 API."""

from fastapi import APIRouter, Depends, Query

from lares.api.feeds import get_subscriptions
from lares.api.serializers import (
    feed_groups_to_list,
    feed_to_dict,
    group_to_dict,
    parse_before,
)
from lares.core.store import Store, get_store
from lares.core.subscriptions import SubscriptionService

router = APIRouter(prefix="/api/groups", tags=["groups"])


@router.get("")
async def list_groups(store: Store = Depends(get_store)) -> dict:
    """获取分组列表及分组关联."""
    groups = await store.list_groups()
    feed_groups = await store.list_feed_groups()
    return {
        "groups": [group_to_dict(group) for group in groups],
        "feeds_groups": feed_groups_to_list(feed_groups),
    }


@router.post("")
async def create_group(
    name: str = Query(..., min_length=1, description="分组名称"),
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """新建分组."""
    return group_to_dict(await service.create_group(name))


@router.get("/{name}")
async def show_group(
    name: str,
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """获取分组下的订阅源."""
    group, feeds = await service.show_group(name)
    return {**group_to_dict(group), "feeds": [feed_to_dict(feed) for feed in feeds]}


@router.delete("/{name}")
async def delete_group(
    name: str,
    orphan_feeds: bool = Query(False, description="分组非空时仍然删除"),
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """删除分组."""
    return group_to_dict(await service.delete_group(name, orphan_feeds=orphan_feeds))


@router.put("/{name}/feeds/{feed_id}")
async def add_feed_to_group(
    name: str,
    feed_id: int,
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """将订阅源加入分组."""
    await service.add_feed_to_group(feed_id, name)
    return {"group": name, "feed_id": feed_id}


@router.delete("/{name}/feeds/{feed_id}")
async def remove_feed_from_group(
    name: str,
    feed_id: int,
    service: SubscriptionService = Depends(get_subscriptions),
) -> dict:
    """将订阅源移出分组."""
    await service.remove_feed_from_group(feed_id, name)
    return {"group": name, "feed_id": feed_id}


@router.post("/{name}/read")
async def mark_group_read(
    name: str,
    before: int | None = Query(None, description="Unix 时间戳，只标记此前的文章"),
    store: Store = Depends(get_store),
) -> dict:
    """将分组内所有订阅源的文章标记为已读."""
    group = await store.get_group_by_title(name)
    count = await store.mark_group_read(group.id, parse_before(before))  # type: ignore[arg-type]
    return {"group": name, "marked": count}
