"""
Shared source adapter.

Wraps any callback-based source (an attach/detach pair, e.g.
``emitter.on`` / ``emitter.off``) into a SubEventCount that keeps a
single handler attached while it has at least one subscriber.
"""
import asyncio
from typing import Any, Callable, Optional

from loguru import logger

from sub_events.count import CountOptions, SubCountChange, SubEventCount

Handler = Callable[[Any], Any]


def from_shared_source(
    attach: Callable[[Handler], Any],
    detach: Callable[[Handler], Any],
    deferred: bool = True,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> SubEventCount:
    """
    Share one source handler between all subscribers.

    Args:
        attach: registers the handler with the source
        detach: removes the handler from the source
        deferred: forward source values with emit (True) or emit_sync (False)
        loop: event loop for deferred delivery

    Returns:
        SubEventCount that attaches on its first subscriber and detaches
        after its last subscription is cancelled.
    """
    event: SubEventCount = SubEventCount(CountOptions(sync=True, loop=loop))
    handler: Handler = event.emit if deferred else event.emit_sync

    def on_count(info: SubCountChange) -> None:
        if info.prev_count == 0:
            attach(handler)
            logger.debug("[SharedSource] Attached to source")
        elif info.new_count == 0:
            detach(handler)
            logger.debug("[SharedSource] Detached from source")

    event.on_count.subscribe(on_count)
    return event
