"""
异步工具函数

- run_sync: 存储层是同步的（psycopg2 / 带锁的内存实现），在线程池中调用
- stop_task: 取消后台任务并等待其退出（WebSocket 发送协程等）
"""

import asyncio
from typing import Callable, Optional, TypeVar

from domains.infra.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


async def run_sync(func: Callable[..., T], *args, **kwargs) -> T:
    """
    在线程池中执行同步函数，避免阻塞 event loop。

    Example:
        candidate = await run_sync(store.get, "c1")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def stop_task(task: Optional[asyncio.Task], name: str = "task") -> None:
    """取消任务并等待结束；任务自身的异常只记录日志"""
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug("task_stopped_with_error", task=name, error=str(e))
