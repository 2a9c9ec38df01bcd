"""
SubEvent — typed publish/subscribe with monitored subscriptions.

Subscribers are kept in registration order. Every emit takes a copy of
the current list (the snapshot) before calling anybody, so callbacks may
subscribe or cancel freely while a delivery is in progress.

Usage:
    from sub_events import SubEvent

    event: SubEvent[str] = SubEvent()
    sub = event.subscribe(lambda text: print(text))

    event.emit_sync("now")       # runs the callbacks before returning
    event.emit("later")          # schedules them on the asyncio loop
    sub.cancel()
"""
import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from functools import partial
from types import MethodType
from typing import Any, Callable, Generic, Optional, TypeVar

from loguru import logger

from .config import settings
from .sub import Subscription

T = TypeVar("T")

# Subscription callback; may return an awaitable
SubFunction = Callable[[T], Any]

ErrorHandler = Callable[[BaseException], Any]


class EventTimeoutError(asyncio.TimeoutError):
    """Raised by to_future() when no value was emitted in time."""


@dataclass
class SubContext(Generic[T]):
    """Per-subscription context, passed to on_subscribe and then to on_cancel."""
    event: "SubEvent[T]"
    name: Optional[str] = None
    data: Any = None  # set by on_subscribe, read back by on_cancel


@dataclass(eq=False)
class Subscriber(Generic[T]):
    """Registry record for one live subscription. Compared by identity."""
    cb: SubFunction
    ctx: SubContext
    name: Optional[str] = None
    cancel: Optional[Callable[[], None]] = None  # wired by Subscription


@dataclass(frozen=True)
class EventOptions:
    """Constructor options for SubEvent."""
    max: Optional[int] = None  # recipients per emit, 0 = no limit; None = settings.default_max
    on_subscribe: Optional[Callable[[SubContext], None]] = None
    on_cancel: Optional[Callable[[SubContext], None]] = None
    loop: Optional[asyncio.AbstractEventLoop] = None  # defaults to the running loop

    def __post_init__(self):
        if self.max is None:
            object.__setattr__(self, "max", settings.default_max)
        if self.max < 0:
            raise ValueError(f"max must be >= 0, got {self.max}")


@dataclass(frozen=True)
class SubOptions:
    """Options for a single subscribe call."""
    name: Optional[str] = None
    this_arg: Any = None  # callback is bound to it: cb(this_arg, data)


@dataclass(frozen=True)
class SubStat:
    """Subscription statistics, see SubEvent.get_stat()."""
    named: dict[str, int] = field(default_factory=dict)
    unnamed: int = 0


def _is_bound(cb: Any) -> bool:
    if inspect.ismethod(cb):
        return True
    # Builtin methods such as list.append carry their receiver in __self__
    owner = getattr(cb, "__self__", None)
    return inspect.isbuiltin(cb) and owner is not None and not inspect.ismodule(owner)


def bind_callback(cb: SubFunction, options: SubOptions) -> SubFunction:
    """Validates a subscription callback and binds it to options.this_arg, if given."""
    if not callable(cb):
        raise TypeError(f"Subscription callback must be callable, got {type(cb).__name__}")
    if options.this_arg is None:
        return cb
    if _is_bound(cb):
        raise TypeError(f"Callback {cb!r} is already bound, it cannot take this_arg")
    return MethodType(cb, options.this_arg)


class SubEvent(Generic[T]):
    """Implements subscribing to and triggering an event."""

    def __init__(self, options: Optional[EventOptions] = None):
        self.options: EventOptions = options or EventOptions()
        self._subs: list[Subscriber[T]] = []
        # Futures created from awaitable callback results, kept until done
        self._pending: set[asyncio.Future] = set()

    # ── subscriptions ──────────────────────────

    def subscribe(self, cb: SubFunction, options: Optional[SubOptions] = None) -> Subscription:
        """Subscribe to the event.

        Args:
            cb: notification callback, called with the emitted value
            options: optional name and this_arg for the subscription

        Returns:
            Subscription for cancelling it safely.
        """
        options = options or SubOptions()
        cb = bind_callback(cb, options)

        sub: Subscriber[T] = Subscriber(
            cb=cb,
            ctx=SubContext(event=self, name=options.name),
            name=options.name,
        )
        self._subs.append(sub)
        try:
            subscription = Subscription(self._create_cancel(sub), sub)
        except Exception:
            self._subs.remove(sub)
            raise

        on_subscribe = self.options.on_subscribe
        if on_subscribe is not None:
            try:
                on_subscribe(sub.ctx)
            except Exception:
                subscription.cancel()
                raise

        logger.debug(f"[SubEvent] Subscribed {options.name or '<unnamed>'}, count={self.count}")
        return subscription

    def once(self, cb: SubFunction, options: Optional[SubOptions] = None) -> Subscription:
        """Subscribe for one notification only.

        The subscription cancels itself before the callback runs, and a
        value still in flight from an earlier snapshot is not delivered twice.
        """
        options = options or SubOptions()
        cb = bind_callback(cb, options)

        sub: Optional[Subscription] = None

        def handler(data: T) -> Any:
            if sub.cancel():
                return cb(data)
            return None

        sub = self.subscribe(handler, SubOptions(name=options.name))
        return sub

    async def to_future(self, name: Optional[str] = None, timeout: Optional[float] = None) -> T:
        """Wait for the next emitted value.

        Args:
            name: subscription name, as reported by get_stat()
            timeout: seconds to wait, None = forever

        Raises:
            EventTimeoutError: nothing was emitted within the timeout
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def resolve(data: T) -> None:
            if not future.done():
                future.set_result(data)

        sub = self.once(resolve, SubOptions(name=name))
        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[SubEvent] to_future({name!r}) timed out after {timeout}s")
            raise EventTimeoutError(f"Event timed out after {timeout}s") from None
        finally:
            sub.cancel()

    @property
    def count(self) -> int:
        """Current number of live subscriptions."""
        return len(self._subs)

    @property
    def max_subs(self) -> int:
        """Maximum number of recipients per emit, 0 = no limit."""
        return self.options.max

    def cancel_all(self) -> int:
        """Cancel all subscriptions.

        Returns:
            Number of subscriptions cancelled.

        Raises:
            The first exception raised by on_cancel, after every hook has run.
        """
        subs = self._subs
        if not subs:
            return 0
        self._subs = []
        # Every handle goes dead before any hook runs
        for sub in subs:
            if sub.cancel is not None:
                sub.cancel()
        logger.debug(f"[SubEvent] Cancelled all {len(subs)} subscriptions")

        on_cancel = self.options.on_cancel
        if on_cancel is not None:
            error: Optional[Exception] = None
            for sub in subs:
                try:
                    on_cancel(sub.ctx)
                except Exception as e:
                    logger.debug(f"[SubEvent] on_cancel failed for {sub.name or '<unnamed>'}: {e!r}")
                    if error is None:
                        error = e
            if error is not None:
                raise error
        return len(subs)

    def get_stat(self, min_use: int = 0) -> SubStat:
        """Count live subscriptions by name, to help finding subscription leaks.

        Args:
            min_use: only report names used by at least this many subscriptions
        """
        named: dict[str, int] = defaultdict(int)
        unnamed = 0
        for sub in self._subs:
            if sub.name is None:
                unnamed += 1
            else:
                named[sub.name] += 1
        return SubStat(
            named={name: n for name, n in named.items() if n >= min_use},
            unnamed=unnamed,
        )

    # ── emission ──────────────────────────

    def emit(self, data: T, on_finished: Optional[Callable[[int], Any]] = None) -> int:
        """Asynchronous broadcast: each recipient is called on a later loop turn.

        Args:
            data: value to send
            on_finished: called with the number of recipients after the last
                one was called. Not called when that last callback raises.

        Returns:
            Number of recipients in the snapshot.
        """
        recipients = self._get_recipients()
        if recipients:
            loop = self._get_loop()
            last = len(recipients) - 1
            for index, sub in enumerate(recipients):
                finish = on_finished if index == last else None
                loop.call_soon(self._deliver, sub, data, finish, len(recipients))
        return len(recipients)

    def emit_safe(
        self,
        data: T,
        on_error: ErrorHandler,
        on_finished: Optional[Callable[[int], Any]] = None,
    ) -> int:
        """Asynchronous broadcast with every recipient isolated from the others.

        Exceptions raised by callbacks, and failures of awaitables they
        return, are passed to on_error.
        """
        recipients = self._get_recipients()
        if recipients:
            loop = self._get_loop()
            last = len(recipients) - 1
            for index, sub in enumerate(recipients):
                finish = on_finished if index == last else None
                loop.call_soon(self._deliver_safe, sub, data, on_error, finish, len(recipients))
        return len(recipients)

    def emit_sync(self, data: T) -> int:
        """Synchronous broadcast. A callback exception stops the delivery and propagates.

        Returns:
            Number of recipients in the snapshot.
        """
        recipients = self._get_recipients()
        for sub in recipients:
            self._watch(sub.cb(data))
        return len(recipients)

    def emit_sync_safe(self, data: T, on_error: ErrorHandler) -> int:
        """Synchronous broadcast, passing every callback failure to on_error."""
        recipients = self._get_recipients()
        for sub in recipients:
            try:
                self._watch(sub.cb(data), on_error)
            except Exception as e:
                self._report(sub, e, on_error)
        return len(recipients)

    # ── internals ──────────────────────────

    def _deliver(self, sub: Subscriber[T], data: T, finish, total: int) -> None:
        self._watch(sub.cb(data))
        if finish is not None:
            finish(total)

    def _deliver_safe(self, sub: Subscriber[T], data: T, on_error: ErrorHandler, finish, total: int) -> None:
        try:
            self._watch(sub.cb(data), on_error)
        except Exception as e:
            self._report(sub, e, on_error)
        finally:
            if finish is not None:
                finish(total)

    def _report(self, sub: Subscriber[T], error: BaseException, on_error: ErrorHandler) -> None:
        logger.debug(f"[SubEvent] Subscriber {sub.name or '<unnamed>'} failed: {error!r}")
        on_error(error)

    def _watch(self, result: Any, on_error: Optional[ErrorHandler] = None) -> None:
        """Track an awaitable returned by a callback, so that its failure is not lost."""
        if not inspect.isawaitable(result):
            return
        try:
            future = asyncio.ensure_future(result, loop=self._get_loop())
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            raise
        self._pending.add(future)
        future.add_done_callback(partial(self._settle, on_error=on_error))

    def _settle(self, future: asyncio.Future, on_error: Optional[ErrorHandler] = None) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        if on_error is not None:
            logger.debug(f"[SubEvent] Async subscriber failed: {error!r}")
            on_error(error)
        else:
            logger.opt(exception=error).error(f"[SubEvent] Unhandled async subscriber error: {error!r}")

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self.options.loop is not None:
            return self.options.loop
        return asyncio.get_running_loop()

    def _get_recipients(self) -> list[Subscriber[T]]:
        """Snapshot of the subscribers that must receive the data, honoring max."""
        end = self.options.max or len(self._subs)
        return self._subs[:end]

    def _create_cancel(self, sub: Subscriber[T]) -> Callable[[], None]:
        """Creates the cancellation thunk handed to the Subscription."""
        def cancel() -> None:
            self._cancel_sub(sub)
        return cancel

    def _cancel_sub(self, sub: Subscriber[T]) -> None:
        """Removes one subscriber, which must be on the list."""
        self._subs.remove(sub)
        on_cancel = self.options.on_cancel
        if on_cancel is not None:
            on_cancel(sub.ctx)
        logger.debug(f"[SubEvent] Cancelled {sub.name or '<unnamed>'}, count={self.count}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} count={self.count} max={self.max_subs}>"
