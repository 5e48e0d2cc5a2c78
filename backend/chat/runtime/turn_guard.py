from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ThreadBusyError(RuntimeError):
    pass


class ThreadTurnGuard:
    """Refuses a second concurrent turn on the same assistant thread.

    The remote service allows only one active run per thread. Turns without a
    thread id always pass since their thread does not exist yet.
    """

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._lock = asyncio.Lock()

    async def acquire(self, thread_id: str | None) -> None:
        if not thread_id:
            return
        async with self._lock:
            if thread_id in self._active:
                raise ThreadBusyError(f"thread {thread_id} already has a turn in progress")
            self._active.add(thread_id)

    async def release(self, thread_id: str | None) -> None:
        if not thread_id:
            return
        async with self._lock:
            self._active.discard(thread_id)

    def release_nowait(self, thread_id: str | None) -> None:
        """Release without awaiting, for cleanup paths that may be cancelled."""
        if thread_id:
            self._active.discard(thread_id)

    @asynccontextmanager
    async def hold(self, thread_id: str | None) -> AsyncIterator[None]:
        await self.acquire(thread_id)
        try:
            yield
        finally:
            await self.release(thread_id)

    async def active_threads(self) -> list[str]:
        async with self._lock:
            return sorted(self._active)


_guard_lock = threading.Lock()
_guard_loop: asyncio.AbstractEventLoop | None = None
_turn_guard: ThreadTurnGuard | None = None


def get_turn_guard() -> ThreadTurnGuard:
    global _guard_loop, _turn_guard

    loop = asyncio.get_running_loop()
    with _guard_lock:
        if _turn_guard is not None and _guard_loop is loop:
            return _turn_guard
        _guard_loop = loop
        _turn_guard = ThreadTurnGuard()
        return _turn_guard
