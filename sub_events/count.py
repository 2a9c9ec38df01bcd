"""
SubEventCount — SubEvent that also reports changes in its subscriber count.
"""
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .event import EventOptions, SubEvent, Subscriber

T = TypeVar("T")


@dataclass(frozen=True)
class SubCountChange:
    """A change in the number of subscribers, as sent through on_count."""
    new_count: int
    prev_count: int


@dataclass(frozen=True)
class CountOptions(EventOptions):
    """Constructor options for SubEventCount."""
    sync: bool = False  # deliver on_count with emit_sync instead of emit


class SubEventCount(SubEvent[T]):
    """Extends SubEvent with the on_count event, to observe the number of subscriptions."""

    def __init__(self, options: Optional[CountOptions] = None):
        options = options or CountOptions()
        super().__init__(options)
        # Notifies of any change in the number of subscribers
        self.on_count: SubEvent[SubCountChange] = SubEvent(EventOptions(max=0, loop=options.loop))
        c = self.on_count
        self._notify: Callable[[SubCountChange], int] = c.emit_sync if options.sync else c.emit

    def cancel_all(self) -> int:
        """Cancel all subscriptions, with a single on_count notification for the whole batch."""
        prev_count = self.count
        if prev_count:
            try:
                super().cancel_all()
            finally:
                # on_cancel hooks may have subscribed again
                self._notify(SubCountChange(new_count=self.count, prev_count=prev_count))
        return prev_count

    def _create_cancel(self, sub: Subscriber[T]) -> Callable[[], None]:
        # Called right after the record was added
        count = self.count
        self._notify(SubCountChange(new_count=count, prev_count=count - 1))

        def cancel() -> None:
            prev_count = self.count
            try:
                self._cancel_sub(sub)
            finally:
                self._notify(SubCountChange(new_count=prev_count - 1, prev_count=prev_count))
        return cancel
