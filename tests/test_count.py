"""
Tests for SubEventCount and its on_count event
"""
import pytest

from sub_events import CountOptions, SubCountChange, SubEventCount, SubOptions


def changes(items):
    return [(c.prev_count, c.new_count) for c in items]


class TestSyncCount:
    """on_count delivered with emit_sync"""

    def setup_method(self):
        self.event = SubEventCount(CountOptions(sync=True))
        self.seen = []
        self.event.on_count.subscribe(self.seen.append)

    def test_subscribe_and_cancel(self):
        """3 subscribes and 1 cancel give 0→1, 1→2, 2→3, 3→2"""
        subs = [self.event.subscribe(lambda _: None) for _ in range(3)]
        subs[0].cancel()

        assert changes(self.seen) == [(0, 1), (1, 2), (2, 3), (3, 2)]
        assert self.event.count == 2

    def test_double_cancel_reports_once(self):
        sub = self.event.subscribe(lambda _: None)
        sub.cancel()
        sub.cancel()

        assert changes(self.seen) == [(0, 1), (1, 0)]

    def test_cancel_all_single_change(self):
        """cancel_all from 3 sends exactly one 3→0"""
        for _ in range(3):
            self.event.subscribe(lambda _: None)
        self.seen.clear()

        assert self.event.cancel_all() == 3
        assert self.seen == [SubCountChange(new_count=0, prev_count=3)]

    def test_cancel_all_empty_silent(self):
        assert self.event.cancel_all() == 0
        assert self.seen == []

    def test_cancel_all_handles_dead(self):
        subs = [self.event.subscribe(lambda _: None) for _ in range(2)]
        self.event.cancel_all()
        self.seen.clear()

        assert all(s.cancel() is False for s in subs)
        assert self.seen == []

    def test_count_seen_from_listener(self):
        """The registry is already updated when on_count fires"""
        counts = []
        self.event.on_count.subscribe(lambda change: counts.append(self.event.count))

        sub = self.event.subscribe(lambda _: None)
        sub.cancel()

        assert counts == [1, 0]

    def test_base_behaviour_kept(self):
        got = []
        self.event.subscribe(got.append)
        self.event.subscribe(got.append)

        assert self.event.emit_sync("x") == 2
        assert got == ["x", "x"]


class TestDeferredCount:
    """on_count delivered with emit (default)"""

    def test_default_is_deferred(self):
        event = SubEventCount()
        # No listeners: no loop needed
        event.subscribe(lambda _: None)
        assert event.count == 1

    def test_requires_loop_with_listeners(self):
        event = SubEventCount()
        event.on_count.subscribe(lambda _: None)
        with pytest.raises(RuntimeError):
            event.subscribe(lambda _: None)
        assert event.count == 0

    @pytest.mark.asyncio
    async def test_changes_after_loop_turn(self, flush):
        event = SubEventCount()
        seen = []
        event.on_count.subscribe(seen.append)

        subs = [event.subscribe(lambda _: None) for _ in range(3)]
        subs[2].cancel()
        assert seen == []

        await flush()
        assert changes(seen) == [(0, 1), (1, 2), (2, 3), (3, 2)]

        seen.clear()
        event.cancel_all()
        await flush()
        assert changes(seen) == [(2, 0)]


class Boom(Exception):
    pass


class TestFailingHooks:
    """on_count stays consistent when on_cancel raises or subscribes again"""

    def make_event(self, on_cancel):
        event = SubEventCount(CountOptions(sync=True, on_cancel=on_cancel))
        seen = []
        event.on_count.subscribe(seen.append)
        return event, seen

    def test_single_cancel_still_notified(self):
        def on_cancel(ctx):
            raise Boom("hook failed")

        event, seen = self.make_event(on_cancel)
        sub = event.subscribe(lambda _: None)

        with pytest.raises(Boom):
            sub.cancel()

        assert changes(seen) == [(0, 1), (1, 0)]
        assert event.count == 0
        assert sub.live is False

    def test_cancel_all_still_notified(self):
        def on_cancel(ctx):
            if ctx.name == "a":
                raise Boom("hook failed")

        event, seen = self.make_event(on_cancel)
        a = event.subscribe(lambda _: None, SubOptions(name="a"))
        b = event.subscribe(lambda _: None, SubOptions(name="b"))
        seen.clear()

        with pytest.raises(Boom):
            event.cancel_all()

        assert not a.live and not b.live
        assert b.cancel() is False
        assert seen == [SubCountChange(new_count=0, prev_count=2)]

    def test_cancel_all_reports_live_count(self):
        """A hook subscribing during cancel_all is reflected in the final change"""
        event = None

        def on_cancel(ctx):
            if ctx.name == "first":
                event.subscribe(lambda _: None, SubOptions(name="again"))

        event, seen = self.make_event(on_cancel)
        event.subscribe(lambda _: None, SubOptions(name="first"))
        event.subscribe(lambda _: None, SubOptions(name="second"))
        seen.clear()

        assert event.cancel_all() == 2
        assert event.count == 1
        assert seen[-1] == SubCountChange(new_count=1, prev_count=2)
