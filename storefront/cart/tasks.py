"""
Fire-and-forget background tasks.

The remote half of every cart write runs here. Callers never await the
task or see its result; a failure is logged and handed to the optional
on_error hook. Tasks cannot be cancelled once scheduled.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Set

from storefront.logging import get_logger

logger = get_logger(__name__)

ErrorHook = Callable[[str, BaseException], None]


class BackgroundTaskRunner:
    """
    Schedules coroutines on an event loop and keeps them referenced until done.

    The loop is the one running at construction or the last one bound. Blocking
    device store calls run in worker threads; a spawn from such a thread is
    handed to the bound loop with call_soon_threadsafe.
    """

    def __init__(self, on_error: Optional[ErrorHook] = None, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.on_error = on_error
        self._tasks: Set[asyncio.Task] = set()
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Use loop for spawns coming from threads without a running loop."""
        self._loop = loop

    def spawn(self, name: str, coro: Awaitable) -> Optional[asyncio.Task]:
        """
        Schedule coro in the background.

        On the loop thread the task is returned. From a worker thread the
        coroutine goes to the bound loop and None is returned. With no
        running loop anywhere (plain synchronous caller) the coroutine is
        dropped.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._loop = loop
            return self._start(name, coro)

        bound = self._loop
        if bound is not None and bound.is_running() and not bound.is_closed():
            bound.call_soon_threadsafe(self._start, name, coro)
            return None

        logger.debug(f"No running event loop, skipping background task {name}")
        coro.close()
        return None

    def _start(self, name: str, coro: Awaitable) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._guard(name, coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, name: str, coro: Awaitable) -> None:
        try:
            await coro
        except Exception as e:
            logger.warning(f"Background task {name} failed: {e}", exc_info=True)
            if self.on_error is not None:
                try:
                    self.on_error(name, e)
                except Exception:
                    logger.exception(f"on_error hook raised for task {name}")

    async def drain(self) -> None:
        """Wait until every scheduled task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_task_runner: Optional[BackgroundTaskRunner] = None


def get_task_runner() -> BackgroundTaskRunner:
    """Get the process-wide BackgroundTaskRunner singleton."""
    global _task_runner
    if _task_runner is None:
        _task_runner = BackgroundTaskRunner()
    return _task_runner
