"""Item 文章模型."""

from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Item(SQLModel, table=True):
    """Feed 中抓取到的文章."""

    __tablename__ = "item"  # type: ignore[assignment]
    # url 只在同一个 feed 内去重
    __table_args__ = (UniqueConstraint("feed_id", "url", name="uq_item_feed_url"),)

    id: int | None = Field(default=None, primary_key=True)
    feed_id: int = Field(foreign_key="feed.id", description="关联 Feed")
    title: str = Field(default="", description="标题")
    author: str = Field(default="", description="作者")
    html: str = Field(default="", description="HTML 内容")
    url: str = Field(description="原文链接")
    is_saved: bool = Field(default=False, description="是否收藏")
    is_read: bool = Field(default=False, description="是否已读")
    created_time: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="发布时间（UTC）"
    )
