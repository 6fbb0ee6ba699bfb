"""应用配置管理."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from lares import __version__


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_prefix="LARES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 数据库
    database_url: str = "sqlite+aiosqlite:///./lares.db"

    # 定时抓取配置
    crawl_interval_minutes: int = 30
    crawl_on_startup: bool = True
    crawl_concurrency: int | None = None  # None 表示不限制

    # OPML 导入配置
    import_concurrency: int | None = None

    # HTTP 配置
    http_timeout_seconds: float | None = None  # 默认不设超时
    max_redirects: int = 5
    user_agent_product: str = "LaresBot"
    user_agent_version: str = __version__
    user_agent_homepage: str = "https://github.com/fanzeyi/lares"

    @property
    def user_agent(self) -> str:
        """请求时使用的 User-Agent."""
        return (
            f"{self.user_agent_product}/{self.user_agent_version} "
            f"(+{self.user_agent_homepage})"
        )


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()
