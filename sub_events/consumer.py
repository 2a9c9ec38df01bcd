"""
EventConsumer — receive-only view of a SubEvent.

A component keeps its SubEvent private and hands out an EventConsumer,
so outside code can subscribe but can neither emit nor cancel other
subscriptions:

    class Sensor:
        def __init__(self):
            self._changed: SubEvent[float] = SubEvent()
            self.changed: EventConsumer[float] = EventConsumer(self._changed)

The wrapped event lives in a module-level weak map, not on the consumer.
"""
from typing import Generic, Optional, TypeVar
from weakref import WeakKeyDictionary

from .event import SubEvent, SubFunction, SubOptions, SubStat
from .sub import Subscription

T = TypeVar("T")

_events: "WeakKeyDictionary[EventConsumer, SubEvent]" = WeakKeyDictionary()


def _consume(obj: "EventConsumer[T]") -> SubEvent[T]:
    return _events[obj]


class EventConsumer(Generic[T]):
    """Same read/subscribe surface as SubEvent, minus emit and cancel_all."""

    __slots__ = ("__weakref__",)

    def __init_subclass__(cls, **kwargs):
        raise TypeError("EventConsumer cannot be subclassed")

    def __init__(self, event: SubEvent[T]):
        if not isinstance(event, SubEvent):
            raise TypeError(f"EventConsumer expects a SubEvent, got {type(event).__name__}")
        _events[self] = event

    @property
    def count(self) -> int:
        return _consume(self).count

    @property
    def max_subs(self) -> int:
        return _consume(self).max_subs

    def subscribe(self, cb: SubFunction, options: Optional[SubOptions] = None) -> Subscription:
        return _consume(self).subscribe(cb, options)

    def once(self, cb: SubFunction, options: Optional[SubOptions] = None) -> Subscription:
        return _consume(self).once(cb, options)

    async def to_future(self, name: Optional[str] = None, timeout: Optional[float] = None) -> T:
        return await _consume(self).to_future(name=name, timeout=timeout)

    def get_stat(self, min_use: int = 0) -> SubStat:
        return _consume(self).get_stat(min_use)

    def __repr__(self) -> str:
        return f"<EventConsumer count={self.count}>"
