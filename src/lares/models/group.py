"""Group 分组模型."""

from sqlmodel import Field, SQLModel


class Group(SQLModel, table=True):
    """订阅分组."""

    __tablename__ = "group"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(unique=True, description="分组名称")
