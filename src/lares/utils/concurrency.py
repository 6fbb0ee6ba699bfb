"""并发工具 - 扇出执行并收集每个单元的结果."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class UnitResult(Generic[T, R]):
    """单个任务单元的执行结果."""

    unit: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fan_out(
    func: Callable[[T], Awaitable[R]],
    units: Iterable[T],
    *,
    concurrency: int | None = None,
    label: str = "task",
) -> list[UnitResult[T, R]]:
    """
    为每个单元启动一个独立任务，等待全部完成后按输入顺序返回结果.

    单个任务抛出的异常会被记录到对应的 UnitResult 中，
    不会影响其他任务，也不会向调用方传播。

    Args:
        func: 处理单个单元的协程函数
        units: 待处理的单元
        concurrency: 最大并发数，None 表示不限制
        label: 日志中使用的任务名称
    """
    semaphore = asyncio.Semaphore(concurrency) if concurrency else None

    async def run(unit: T) -> UnitResult[T, R]:
        try:
            if semaphore is None:
                return UnitResult(unit, value=await func(unit))
            async with semaphore:
                return UnitResult(unit, value=await func(unit))
        except Exception as e:
            logger.warning(f"{label} 失败 ({unit}): {e!r}")
            return UnitResult(unit, error=e)

    return list(await asyncio.gather(*(run(unit) for unit in units)))
