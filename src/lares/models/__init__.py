"""数据模型."""

from lares.models.database import async_session_maker, init_db
from lares.models.feed import Feed
from lares.models.feed_group import FeedGroup
from lares.models.group import Group
from lares.models.item import Item

__all__ = [
    "Feed",
    "FeedGroup",
    "Group",
    "Item",
    "async_session_maker",
    "init_db",
]
