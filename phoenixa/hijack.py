"""
Hijacking: handing the raw connection of a request over to a handler.

An adapter that can expose the underlying connection passes an
`on_hijack` callable when it builds a Request. A handler calling
Request.hijack() gets its callback invoked later with a StreamChannel,
while hijack() itself raises HijackException so the handler never
returns a response. Adapters either catch HijackException themselves or
run handlers through call_handler(), which turns it into HIJACKED.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from .errors import HijackError

if TYPE_CHECKING:
    from .request import Request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamChannel:
    """Bidirectional byte channel standing in for the raw connection."""

    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter


HijackCallback = Callable[[StreamChannel], Any]
OnHijack = Callable[[HijackCallback], Union[Awaitable[None], None]]


class HijackException(BaseException):
    """
    Raised by Request.hijack() to unwind the handler.

    This is control flow, not an error: it derives from BaseException so
    `except Exception` blocks in handlers and middleware let it through.
    Only adapters should handle it.
    """

    def __str__(self) -> str:
        return (
            "A request's underlying data stream was hijacked. "
            "This exception is used for control flow and should only be handled by an adapter."
        )


class HandlerOutcome(enum.Enum):
    HIJACKED = "hijacked"


HIJACKED = HandlerOutcome.HIJACKED


class HijackHandle:
    """Wraps an adapter's on_hijack callable and makes sure it runs once."""

    __slots__ = ("_on_hijack", "called", "_task")

    def __init__(self, on_hijack: OnHijack) -> None:
        self._on_hijack = on_hijack
        self.called = False
        self._task: asyncio.Future | None = None

    def run(self, callback: HijackCallback) -> None:
        """
        Schedule on_hijack(callback) on the running event loop.

        Raises HijackError if the handle was already used.
        """
        if self.called:
            raise HijackError("This request has already been hijacked")
        loop = asyncio.get_running_loop()
        self.called = True
        logger.debug("Scheduling hijack callback %r", callback)
        loop.call_soon(self._dispatch, callback)

    def _dispatch(self, callback: HijackCallback) -> None:
        try:
            result = self._on_hijack(callback)
        except Exception:
            logger.exception("Hijack callback failed")
            return
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(_log_failure)


def _log_failure(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Hijack callback failed", exc_info=exc)


async def call_handler(
    handler: Callable[[Request], Any],
    request: Request,
) -> Any:
    """
    Run a sync or async handler for request.

    Returns the handler's result, or HIJACKED when the handler took over
    the connection. Raises HijackError when the handler and the request
    disagree about whether a hijack happened.
    """
    try:
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
    except HijackException:
        if not request.is_hijacked:
            raise HijackError("Handler raised HijackException for a request that was not hijacked")
        return HIJACKED

    if request.is_hijacked:
        raise HijackError("Handler returned normally after hijacking the request")
    return result
