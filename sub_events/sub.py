"""
Subscription — the handle returned by every subscribe call.

Holds the cancellation thunk for exactly one subscriber record. The
thunk is dropped on the first successful cancel, so `live` turns False
once and stays False.
"""
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from .event import Subscriber


class Subscription:
    """Represents an event subscription, and a safe way to cancel it."""

    __slots__ = ("_cancel", "_name")

    def __init__(self, cancel: Callable[[], None], sub: "Subscriber"):
        self._cancel: Optional[Callable[[], None]] = cancel
        self._name = sub.name
        # The event calls this from cancel_all, without going through cancel()
        sub.cancel = self._release

    def _release(self) -> None:
        self._cancel = None

    @property
    def name(self) -> Optional[str]:
        """Label passed with SubOptions at subscribe time, if any."""
        return self._name

    @property
    def live(self) -> bool:
        """False once cancelled, either here or through cancel_all on the event."""
        return self._cancel is not None

    def cancel(self) -> bool:
        """
        Cancels the live subscription. The subscriber won't receive any new emissions.

        Returns:
            True if the subscription was cancelled by this call,
            False if it was not live anymore.
        """
        cancel = self._cancel
        if cancel is None:
            return False
        self._cancel = None
        cancel()
        return True

    def __repr__(self) -> str:
        return f"<Subscription name={self._name!r} live={self.live}>"
