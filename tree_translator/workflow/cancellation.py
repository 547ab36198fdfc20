import asyncio
import inspect
import threading
from typing import Awaitable, Callable, List, TypeVar

from tree_translator.core.config import CANCELLED_MESSAGE

T = TypeVar("T")


class PipelineCancelledError(Exception):
    """The run was stopped on request. Never counted as a per-file failure."""

    def __init__(self, message: str = CANCELLED_MESSAGE):
        super().__init__(message)


class CancellationToken:
    """Cooperative cancellation flag shared by one job's execution.

    Safe to set from any thread. Callbacks registered with
    :meth:`add_callback` run once, on the thread that calls :meth:`cancel`.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelledError()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, aborting it as soon as the token is cancelled.

        Raises :class:`PipelineCancelledError` when the token fires first.
        """
        if self.cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise PipelineCancelledError()
        loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(awaitable)

        def abort() -> None:
            loop.call_soon_threadsafe(task.cancel)

        self.add_callback(abort)
        try:
            return await task
        except asyncio.CancelledError:
            if self.cancelled:
                raise PipelineCancelledError() from None
            raise
        finally:
            self.remove_callback(abort)
