import asyncio
import logging
from typing import Callable, Optional


class RebuildScheduler:
    """
    防抖重建：每次触发都会取消尚未执行的重建并重新计时，
    一串快速修改在静默 delay 秒后只产生一次重建，且反映最终状态。
    """
    def __init__(self, callback: Callable[[], None], delay=0.04) -> None:
        self.callback = callback
        self.delay = delay
        self.run_count = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self):
        return self._task is not None and not self._task.done()

    def trigger(self, delay=None) -> None:
        """必须在事件循环中调用"""
        if self.pending:
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(self.delay if delay is None else delay))

    async def _run(self, delay):
        await asyncio.sleep(delay)
        self.run_count += 1
        logging.debug(f"执行重建，第 {self.run_count} 次")
        self.callback()

    async def flush(self) -> None:
        """等待当前挂起的重建完成"""
        if self._task is None:
            return
        await asyncio.wait({self._task})

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None
