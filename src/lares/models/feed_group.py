"""FeedGroup 分组关联模型."""

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class FeedGroup(SQLModel, table=True):
    """Feed 与分组的多对多关联."""

    __tablename__ = "feed_group"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("group_id", "feed_id"),)

    id: int | None = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    feed_id: int = Field(foreign_key="feed.id", index=True)
