"""接口返回数据的序列化."""

from datetime import UTC, datetime

from lares.core.store import GroupMembers
from lares.models.feed import Feed
from lares.models.group import Group
from lares.models.item import Item


def parse_before(before: int | None) -> datetime | None:
    """Unix 时间戳转为 UTC 时间."""
    if before is None:
        return None
    return datetime.fromtimestamp(before, UTC)


def group_to_dict(group: Group) -> dict:
    return {"id": group.id, "title": group.title}


def feed_to_dict(feed: Feed) -> dict:
    return {
        "id": feed.id,
        "title": feed.title,
        "url": feed.url,
        "site_url": feed.site_url,
        "is_spark": feed.is_spark,
        "last_updated": feed.last_updated.isoformat() if feed.last_updated else None,
    }


def item_to_dict(item: Item) -> dict:
    return {
        "id": item.id,
        "feed_id": item.feed_id,
        "title": item.title,
        "author": item.author,
        "html": item.html,
        "url": item.url,
        "is_saved": item.is_saved,
        "is_read": item.is_read,
        "created_time": item.created_time.isoformat(),
    }


def feed_groups_to_list(members: list[GroupMembers]) -> list[dict]:
    return [{"group_id": m.group_id, "feed_ids": m.feed_ids} for m in members]
