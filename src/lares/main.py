"""Lares 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lares import __version__
from lares.api import feeds, groups, items
from lares.config import get_settings
from lares.errors import (
    AmbiguousFeedError,
    ConsistencyError,
    LaresError,
    NotFoundError,
    ParseError,
    PolicyError,
    TransportError,
)
from lares.models.database import close_db, init_db
from lares.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    logger.info("正在初始化数据库...")
    await init_db(app_settings.database_url)

    logger.info("正在启动定时任务...")
    create_scheduler(app_settings)

    logger.info("Lares 启动完成！")
    yield

    logger.info("正在关闭...")
    await shutdown_scheduler()
    await close_db()
    logger.info("Lares 已关闭")


app = FastAPI(
    title="Lares",
    description="极简 RSS 服务 - 订阅发现、定时抓取与 OPML 导入",
    version=__version__,
    lifespan=lifespan,
)

# 注册路由
app.include_router(groups.router)
app.include_router(feeds.router)
app.include_router(items.router)


def _status_code(exc: LaresError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConsistencyError):
        return 409
    if isinstance(exc, (PolicyError, ParseError)):
        return 422
    if isinstance(exc, TransportError):
        return 502
    return 500


@app.exception_handler(LaresError)
async def lares_error_handler(request: Request, exc: LaresError) -> JSONResponse:
    """业务错误转换为 HTTP 响应."""
    content: dict = {"detail": str(exc)}
    if isinstance(exc, AmbiguousFeedError):
        content["candidates"] = exc.candidates
    return JSONResponse(status_code=_status_code(exc), content=content)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "Lares",
        "version": __version__,
        "description": "极简 RSS 服务",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lares.main:app",
        host="127.0.0.1",
        port=4000,
    )
