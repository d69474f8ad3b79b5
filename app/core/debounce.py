"""
防抖任务 - 同一键的重复调度会取消并重新计时
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, Set, Tuple

from app.core.logging import service_logger as logger


class DebouncedTask:
    """按键防抖的异步任务调度器"""

    def __init__(self, delay: float):
        self.delay = delay
        self._pending: Dict[Hashable, Tuple[asyncio.Task, Callable[[], Awaitable[Any]]]] = {}
        self._running: Set[asyncio.Task] = set()

    def schedule(self, key: Hashable, func: Callable[..., Awaitable[Any]], *args, **kwargs):
        """在延迟后执行func；延迟期间再次调度同一键会替换之前的调用"""
        self.cancel(key)

        async def call():
            return await func(*args, **kwargs)

        task = asyncio.create_task(self._run_later(key, call))
        self._pending[key] = (task, call)

    async def _run_later(self, key: Hashable, call: Callable[[], Awaitable[Any]]):
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        # 开始执行后不再可取消，改由flush_all等待其完成
        self._pending.pop(key, None)
        task = asyncio.current_task()
        self._running.add(task)
        try:
            await call()
        except Exception as e:
            logger.opt(exception=e).error(f"Debounced task {key!r} failed: {e}")
        finally:
            self._running.discard(task)

    def cancel(self, key: Hashable) -> bool:
        """取消尚未执行的调用"""
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def flush(self, key: Hashable) -> bool:
        """立即执行某个键的待定调用"""
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        task, call = entry
        task.cancel()
        await call()
        return True

    def running(self) -> int:
        """正在执行中的调用数"""
        return len(self._running)

    async def flush_all(self):
        """立即执行所有待定调用，并等待正在执行的调用完成（用于关闭时）"""
        for key in list(self._pending):
            try:
                await self.flush(key)
            except Exception as e:
                logger.opt(exception=e).error(f"Flushing debounced task {key!r} failed: {e}")
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
