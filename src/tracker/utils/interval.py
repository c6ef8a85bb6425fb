from __future__ import annotations

import asyncio
import inspect
import threading
from typing import Awaitable, Callable, Optional, Union

import structlog

log = structlog.get_logger("interval")

class Interval:
    """
    Periodic background task on a daemon thread.

    Calls `fn()` every `interval_s` seconds until `fn` returns a falsy value or
    stop() is called. An exception from `fn` is logged and the loop keeps going.
    stop() is idempotent and may be called from any thread, including from
    inside `fn`.
    """
    def __init__(
        self,
        fn: Callable[[], bool],
        interval_s: float,
        run_immediately: bool = False,
        name: Optional[str] = None,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._fn = fn
        self.interval_s = float(interval_s)
        self.run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=name or "interval", daemon=True)

    def start(self) -> "Interval":
        self._thread.start()
        return self

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def stop(self, wait: bool = True) -> None:
        self._stop.set()
        # joining ourselves would deadlock when stop() runs inside fn
        if wait and self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join()

    def _call(self) -> bool:
        try:
            return bool(self._fn())
        except Exception as e:
            log.warning("interval_callback_error", name=self._thread.name, err=str(e))
            return True

    def _loop(self) -> None:
        if self.run_immediately and not self._call():
            return
        # Event.wait returns True once stop() was called
        while not self._stop.wait(self.interval_s):
            if not self._call():
                return

def every(
    fn: Callable[[], bool],
    interval_s: float,
    run_immediately: bool = False,
    name: Optional[str] = None,
) -> Interval:
    """Create and start an Interval; the returned handle exposes stop()."""
    return Interval(fn, interval_s, run_immediately=run_immediately, name=name).start()

AsyncCallback = Callable[[], Union[bool, Awaitable[bool]]]

class AsyncInterval:
    """
    asyncio flavour of Interval: one task, cancelled by stop().
    `fn` may be a plain function or a coroutine function.
    """
    def __init__(
        self,
        fn: AsyncCallback,
        interval_s: float,
        run_immediately: bool = False,
        name: Optional[str] = None,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._fn = fn
        self.interval_s = float(interval_s)
        self.run_immediately = run_immediately
        self.name = name or "async-interval"
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "AsyncInterval":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        return self

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        if task is asyncio.current_task():
            # called from inside fn: the loop dies at its next await
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _call(self) -> bool:
        try:
            res = self._fn()
            if inspect.isawaitable(res):
                res = await res
            return bool(res)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("interval_callback_error", name=self.name, err=str(e))
            return True

    async def _loop(self) -> None:
        if self.run_immediately and not await self._call():
            return
        while True:
            await asyncio.sleep(self.interval_s)
            if not await self._call():
                return
