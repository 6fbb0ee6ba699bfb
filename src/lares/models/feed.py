"""Feed 订阅源模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel


class Feed(SQLModel, table=True):
    """RSS 订阅源."""

    __tablename__ = "feed"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(description="Feed 标题")
    url: str = Field(unique=True, description="Feed URL")
    site_url: str = Field(description="网站 URL")
    is_spark: bool = Field(default=True, description="未加入任何分组")
    last_updated: datetime | None = Field(default=None, description="最近抓取时间")

    def __str__(self) -> str:
        return f"[{self.id}] {self.title}\n  Feed URL: {self.url}\n  Site URL: {self.site_url}"
