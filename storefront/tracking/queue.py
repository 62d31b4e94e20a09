"""
Bounded background job channel for tracking work that must not delay responses.
"""
import asyncio
import logging
from typing import Any, Callable, Optional
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class BackgroundJobQueue:
    """
    Single-worker queue of blocking callables.
    
    ``submit`` never blocks: when the queue is full the job is dropped and a
    warning logged. Jobs run in the threadpool, one at a time, so tracking
    writes for the same browser are applied in submission order.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        try:
            self._queue.put_nowait((func, args))
        except asyncio.QueueFull:
            logger.warning(f"Tracking queue full, dropping job {getattr(func, '__name__', func)}")
            return False
        return True

    async def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._run())

    async def join(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        """Finish pending jobs, then stop the worker"""
        if self.running:
            await self._queue.join()
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None

    async def _run(self) -> None:
        while True:
            func, args = await self._queue.get()
            try:
                await run_in_threadpool(func, *args)
            except Exception:
                logger.exception(f"Background job {getattr(func, '__name__', func)} failed")
            finally:
                self._queue.task_done()
