"""
sub_events — lightweight, strongly-typed events with monitored subscriptions.

Modules:
- event: SubEvent and its option records
- sub: Subscription handle
- count: SubEventCount with the on_count event
- consumer: EventConsumer, the receive-only view
"""
from loguru import logger

from .consumer import EventConsumer
from .count import CountOptions, SubCountChange, SubEventCount
from .event import (
    EventOptions,
    EventTimeoutError,
    SubContext,
    SubEvent,
    SubOptions,
    SubStat,
)
from .sub import Subscription

# Silent inside host applications until setup_logger() is called
logger.disable(__name__)

__all__ = [
    "SubEvent",
    "EventOptions",
    "SubOptions",
    "SubContext",
    "SubStat",
    "EventTimeoutError",
    "Subscription",
    "SubEventCount",
    "SubCountChange",
    "CountOptions",
    "EventConsumer",
]

__version__ = "1.8.4"
