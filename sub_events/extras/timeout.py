"""
TimeoutEvent — every subscribe starts its own timer, and the subscription
cancels itself once notified.

    event = from_timeout(0.5)
    event.subscribe(lambda _: print("half a second later"))

Cancelling the subscription first stops its timer.
"""
import asyncio
from typing import Any, Optional

from loguru import logger

from sub_events.event import EventOptions, SubContext, SubEvent, SubFunction, SubOptions, bind_callback
from sub_events.sub import Subscription


def from_timeout(timeout: float = 0, loop: Optional[asyncio.AbstractEventLoop] = None) -> "TimeoutEvent":
    """Returns a new TimeoutEvent for the given number of seconds."""
    return TimeoutEvent(timeout, loop=loop)


class TimeoutEvent(SubEvent[None]):
    """Timer event with self-cancelling subscriptions.

    A timer firing emits to every subscriber live at that moment; each of
    them is notified once and then drops out.
    """

    def __init__(self, timeout: float = 0, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.timeout = timeout
        super().__init__(EventOptions(
            max=0,
            on_subscribe=self._start_timer,
            on_cancel=self._stop_timer,
            loop=loop,
        ))

    def subscribe(self, cb: SubFunction, options: Optional[SubOptions] = None) -> Subscription:
        options = options or SubOptions()
        cb = bind_callback(cb, options)

        def handler(_: Any) -> Any:
            if not sub.cancel():
                return None
            return cb()

        sub = super().subscribe(handler, SubOptions(name=options.name))
        return sub

    def _start_timer(self, ctx: SubContext[None]) -> None:
        ctx.data = self._get_loop().call_later(self.timeout, ctx.event.emit, None)

    def _stop_timer(self, ctx: SubContext[None]) -> None:
        timer: Optional[asyncio.TimerHandle] = ctx.data
        if timer is not None:
            timer.cancel()
            logger.debug(f"[TimeoutEvent] Timer stopped for {ctx.name or '<unnamed>'}")
