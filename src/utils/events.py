"""
Multicast event with per-listener isolation.

All listeners run concurrently; a failing listener is logged and never
affects delivery to the others or the caller of fire().
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, List, TypeVar, Union

from utils.errors import log_error, normalize_error

log = logging.getLogger(__name__)

T = TypeVar("T")

EventHandler = Callable[[T], Union[Awaitable[None], None]]


class TaskPlannerEvent(Generic[T]):
    def __init__(self, handler: "EventHandler[T] | None" = None) -> None:
        self._handlers: List[EventHandler[T]] = []
        if handler is not None:
            self.listen(handler)

    def listen(self, handler: "EventHandler[T]") -> Callable[[], None]:
        """Register a listener. Returns a function that unregisters it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._handlers)

    async def fire(self, details: T) -> None:
        handlers = list(self._handlers)
        results = await asyncio.gather(
            *(self._invoke(h, details) for h in handlers), return_exceptions=True
        )
        for i, result in enumerate(results):
            if isinstance(result, BaseException):
                log_error(log, normalize_error(result), handler_index=i)

    @staticmethod
    async def _invoke(handler: "EventHandler[T]", details: Any) -> None:
        result = handler(details)
        if inspect.isawaitable(result):
            await result
