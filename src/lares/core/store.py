"""聚合存储 - Feed / Group / FeedGroup / Item 的读写入口.

每次读写都从连接池中取一个会话，语句（或批次）执行完立即释放，
不会在多个任务之间共享会话。
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import delete, func, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from lares.errors import (
    AlreadyExistsError,
    FeedExistsError,
    GroupExistsError,
    GroupNotEmptyError,
    NotFoundError,
)
from lares.models.database import async_session_maker
from lares.models.feed import Feed
from lares.models.feed_group import FeedGroup
from lares.models.group import Group
from lares.models.item import Item

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)

DEFAULT_PAGE_SIZE = 50

# 批量 UPDATE/DELETE 不同步会话内对象
_BULK = {"synchronize_session": False}


@dataclass
class GroupMembers:
    """一个分组下的全部 Feed ID（升序）."""

    group_id: int
    feed_ids: list[int] = field(default_factory=list)


class Store:
    """关系型聚合存储."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # 通用 CRUD（表名、行解码由 SQLModel 模型提供）
    # ------------------------------------------------------------------

    async def get(self, model: type[ModelT], obj_id: int) -> ModelT:
        """按主键读取，不存在时抛出 NotFoundError."""
        async with self._session_factory() as session:
            obj = await session.get(model, obj_id)
        if obj is None:
            msg = f"{model.__name__} 不存在: id={obj_id}"
            raise NotFoundError(msg)
        return obj

    async def all(self, model: type[ModelT]) -> list[ModelT]:
        """读取整张表（按主键排序）."""
        async with self._session_factory() as session:
            result = await session.execute(select(model).order_by(model.id))  # type: ignore[attr-defined]
            return list(result.scalars().all())

    async def insert(self, obj: ModelT) -> ModelT:
        """插入一行，唯一约束冲突时抛出 AlreadyExistsError."""
        async with self._session_factory() as session:
            session.add(obj)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                msg = f"{type(obj).__name__} 违反唯一约束: {e.orig}"
                raise AlreadyExistsError(msg) from e
            await session.refresh(obj)
        return obj

    async def _first(self, stmt: Any) -> Any:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    # ------------------------------------------------------------------
    # Group
    # ------------------------------------------------------------------

    async def list_groups(self) -> list[Group]:
        """获取所有分组."""
        return await self.all(Group)

    async def get_group(self, group_id: int) -> Group:
        return await self.get(Group, group_id)

    async def find_group(self, title: str) -> Group | None:
        """按名称查找分组."""
        return await self._first(select(Group).where(Group.title == title))

    async def get_group_by_title(self, title: str) -> Group:
        group = await self.find_group(title)
        if group is None:
            msg = f"分组不存在: {title}"
            raise NotFoundError(msg)
        return group

    async def create_group(self, title: str) -> Group:
        """新建分组，名称重复时抛出 GroupExistsError."""
        if await self.find_group(title) is not None:
            msg = f"分组已存在: {title}"
            raise GroupExistsError(msg)
        try:
            return await self.insert(Group(title=title))
        except AlreadyExistsError as e:
            raise GroupExistsError(str(e)) from e

    async def get_or_create_group(self, title: str) -> Group:
        """按名称获取分组，不存在则创建."""
        group = await self.find_group(title)
        if group is not None:
            return group
        try:
            return await self.create_group(title)
        except GroupExistsError:
            # 并发创建时以已存在的为准
            return await self.get_group_by_title(title)

    async def group_feeds(self, group_id: int) -> list[Feed]:
        """获取分组下的所有 Feed."""
        stmt = (
            select(Feed)
            .join(FeedGroup, FeedGroup.feed_id == Feed.id)  # type: ignore[arg-type]
            .where(FeedGroup.group_id == group_id)
            .order_by(Feed.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def delete_group(self, group_id: int, *, orphan_feeds: bool = False) -> Group:
        """
        删除分组.

        分组下仍有 Feed 时必须显式传入 orphan_feeds=True，
        关联记录会一起删除，并重新计算这些 Feed 的 is_spark。
        """
        async with self._session_factory() as session:
            group = await session.get(Group, group_id)
            if group is None:
                msg = f"Group 不存在: id={group_id}"
                raise NotFoundError(msg)

            result = await session.execute(
                select(FeedGroup.feed_id).where(FeedGroup.group_id == group_id)
            )
            member_ids = list(result.scalars().all())
            if member_ids and not orphan_feeds:
                msg = f"分组 {group.title} 下仍有 {len(member_ids)} 个订阅源"
                raise GroupNotEmptyError(msg)

            await session.execute(
                delete(FeedGroup).where(FeedGroup.group_id == group_id),  # type: ignore[arg-type]
                execution_options=_BULK,
            )
            await self._refresh_spark(session, member_ids)
            await session.delete(group)
            await session.commit()

        if member_ids:
            logger.warning(f"分组 {group.title} 已删除，{len(member_ids)} 个订阅源失去该分组")
        return group

    # ------------------------------------------------------------------
    # Feed
    # ------------------------------------------------------------------

    async def list_feeds(self) -> list[Feed]:
        """获取所有订阅源."""
        return await self.all(Feed)

    async def get_feed(self, feed_id: int) -> Feed:
        return await self.get(Feed, feed_id)

    async def find_feed(self, url: str) -> Feed | None:
        """按 URL 查找订阅源."""
        return await self._first(select(Feed).where(Feed.url == url))

    async def insert_feed(self, feed: Feed) -> Feed:
        """新增订阅源，新建的 Feed 总是 spark."""
        feed.is_spark = True
        try:
            return await self.insert(feed)
        except AlreadyExistsError as e:
            msg = f"Feed 已存在: {feed.url}"
            raise FeedExistsError(msg) from e

    async def delete_feed(self, feed_id: int) -> Feed:
        """删除订阅源，同时删除其文章和分组关联."""
        async with self._session_factory() as session:
            feed = await session.get(Feed, feed_id)
            if feed is None:
                msg = f"Feed 不存在: id={feed_id}"
                raise NotFoundError(msg)

            await session.execute(
                delete(Item).where(Item.feed_id == feed_id),  # type: ignore[arg-type]
                execution_options=_BULK,
            )
            await session.execute(
                delete(FeedGroup).where(FeedGroup.feed_id == feed_id),  # type: ignore[arg-type]
                execution_options=_BULK,
            )
            await session.delete(feed)
            await session.commit()

        logger.info(f"已删除订阅源: {feed.url}")
        return feed

    # ------------------------------------------------------------------
    # FeedGroup
    # ------------------------------------------------------------------

    async def list_feed_groups(self) -> list[GroupMembers]:
        """按分组汇总关联关系."""
        stmt = select(FeedGroup).order_by(FeedGroup.group_id, FeedGroup.feed_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        grouped: dict[int, GroupMembers] = {}
        for row in rows:
            members = grouped.setdefault(row.group_id, GroupMembers(row.group_id))
            if row.feed_id not in members.feed_ids:
                members.feed_ids.append(row.feed_id)
        return list(grouped.values())

    async def add_feed_to_group(self, group_id: int, feed_id: int) -> FeedGroup:
        """将 Feed 加入分组，同一事务内把 is_spark 置为 False."""
        async with self._session_factory() as session:
            await self._ensure_exists(session, Group, group_id)
            feed = await self._ensure_exists(session, Feed, feed_id)

            link = FeedGroup(group_id=group_id, feed_id=feed_id)
            session.add(link)
            feed.is_spark = False
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                msg = f"Feed {feed_id} 已在分组 {group_id} 中"
                raise AlreadyExistsError(msg) from e
            await session.refresh(link)
        return link

    async def remove_feed_from_group(self, group_id: int, feed_id: int) -> None:
        """将 Feed 移出分组，最后一个分组被移除时 is_spark 恢复为 True."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(FeedGroup).where(  # type: ignore[arg-type]
                    FeedGroup.group_id == group_id,
                    FeedGroup.feed_id == feed_id,
                ),
                execution_options=_BULK,
            )
            if result.rowcount == 0:
                await session.rollback()
                msg = f"Feed {feed_id} 不在分组 {group_id} 中"
                raise NotFoundError(msg)
            await self._refresh_spark(session, [feed_id])
            await session.commit()

    async def _refresh_spark(self, session: AsyncSession, feed_ids: Iterable[int]) -> None:
        """根据当前关联记录重新计算 is_spark（调用方负责提交）."""
        for feed_id in set(feed_ids):
            count = await session.scalar(
                select(func.count()).select_from(FeedGroup).where(FeedGroup.feed_id == feed_id)
            )
            await session.execute(
                update(Feed).where(Feed.id == feed_id).values(is_spark=not count),  # type: ignore[arg-type]
                execution_options=_BULK,
            )

    @staticmethod
    async def _ensure_exists(session: AsyncSession, model: type[ModelT], obj_id: int) -> ModelT:
        obj = await session.get(model, obj_id)
        if obj is None:
            msg = f"{model.__name__} 不存在: id={obj_id}"
            raise NotFoundError(msg)
        return obj

    # ------------------------------------------------------------------
    # Item
    # ------------------------------------------------------------------

    async def item_urls(self, feed_id: int) -> set[str]:
        """获取某个 Feed 已存储的文章 URL."""
        async with self._session_factory() as session:
            result = await session.execute(select(Item.url).where(Item.feed_id == feed_id))
            return set(result.scalars().all())

    async def insert_items(
        self,
        feed_id: int,
        items: Sequence[Item],
        crawled_at: datetime | None = None,
    ) -> int:
        """
        在一个事务内批量写入文章并更新 Feed 的 last_updated.

        同一 Feed 下已存在的 url 直接跳过，返回实际写入的数量。
        """
        rows = [
            {
                "feed_id": feed_id,
                "title": item.title,
                "author": item.author,
                "html": item.html,
                "url": item.url,
                "is_saved": item.is_saved,
                "is_read": item.is_read,
                "created_time": item.created_time,
            }
            for item in items
        ]
        stmt = sqlite_insert(Item).on_conflict_do_nothing(index_elements=["feed_id", "url"])
        count_stmt = select(func.count()).select_from(Item).where(Item.feed_id == feed_id)

        async with self._session_factory() as session:
            feed = await self._ensure_exists(session, Feed, feed_id)
            before = await session.scalar(count_stmt) or 0
            if rows:
                await session.execute(stmt, rows)
            inserted = (await session.scalar(count_stmt) or 0) - before
            feed.last_updated = crawled_at or datetime.now(UTC)
            await session.commit()

        if inserted < len(rows):
            logger.info(f"Feed {feed_id}: 跳过 {len(rows) - inserted} 篇已存在的文章")
        return inserted

    async def get_item(self, item_id: int) -> Item:
        return await self.get(Item, item_id)

    async def list_items(
        self,
        since_id: int | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> list[Item]:
        """按 ID 升序分页获取文章，since_id 之后（不含）开始."""
        stmt = select(Item).order_by(Item.id).limit(limit)
        if since_id is not None:
            stmt = stmt.where(Item.id > since_id)  # type: ignore[operator]
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_items(self) -> int:
        """文章总数."""
        async with self._session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(Item))
        return count or 0

    async def unread_item_ids(self) -> list[int]:
        """所有未读文章 ID."""
        return await self._item_ids(Item.is_read == False)  # noqa: E712

    async def saved_item_ids(self) -> list[int]:
        """所有已收藏文章 ID."""
        return await self._item_ids(Item.is_saved == True)  # noqa: E712

    async def _item_ids(self, condition: Any) -> list[int]:
        async with self._session_factory() as session:
            result = await session.execute(select(Item.id).where(condition).order_by(Item.id))
            return list(result.scalars().all())

    async def mark_item_read(self, item_id: int) -> None:
        await self._set_item_flags(item_id, is_read=True)

    async def mark_item_saved(self, item_id: int) -> None:
        await self._set_item_flags(item_id, is_saved=True)

    async def mark_item_unsaved(self, item_id: int) -> None:
        await self._set_item_flags(item_id, is_saved=False)

    async def _set_item_flags(self, item_id: int, **values: bool) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Item).where(Item.id == item_id).values(**values),  # type: ignore[arg-type]
                execution_options=_BULK,
            )
            if result.rowcount == 0:
                await session.rollback()
                msg = f"Item 不存在: id={item_id}"
                raise NotFoundError(msg)
            await session.commit()

    async def mark_feed_read(self, feed_id: int, before: datetime | None = None) -> int:
        """将 Feed 中 before 之前的文章标记为已读，返回更新数量."""
        await self.get_feed(feed_id)
        return await self._mark_read(Item.feed_id == feed_id, before)

    async def mark_group_read(self, group_id: int, before: datetime | None = None) -> int:
        """将分组内所有 Feed 中 before 之前的文章标记为已读."""
        await self.get_group(group_id)
        member_ids = select(FeedGroup.feed_id).where(FeedGroup.group_id == group_id)
        return await self._mark_read(Item.feed_id.in_(member_ids), before)  # type: ignore[attr-defined]

    async def _mark_read(self, condition: Any, before: datetime | None) -> int:
        stmt = update(Item).where(condition, Item.is_read == False)  # noqa: E712
        if before is not None:
            stmt = stmt.where(Item.created_time < before)
        async with self._session_factory() as session:
            result = await session.execute(stmt.values(is_read=True), execution_options=_BULK)
            await session.commit()
        return result.rowcount


def get_store() -> Store:
    """获取存储实例（用于依赖注入和后台任务）."""
    return Store(async_session_maker())
