"""Test listener registration and fan-out."""

from __future__ import annotations

import logging

import pytest

from aacp.coalescer import WriteCoalescer
from aacp.dispatcher import ListenerRegistry, SubscriptionScope


class TestListenerRegistry:
    def test_dispatch_in_registration_order(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        calls = []
        registry.register("a", lambda v: calls.append(("first", v)))
        registry.register("a", lambda v: calls.append(("second", v)))
        registry.register("b", lambda v: calls.append(("other", v)))

        delivered = registry.dispatch("a", 7)

        assert delivered == 2
        assert calls == [("first", 7), ("second", 7)]

    def test_listener_unregisters_itself_during_dispatch(self):
        """Every listener of the frame still runs, none is skipped or doubled."""
        registry: ListenerRegistry[int] = ListenerRegistry()
        calls = []

        def self_removing(value):
            calls.append("self")
            registry.unregister(sub)

        sub = registry.register("a", self_removing)
        registry.register("a", lambda v: calls.append("other"))

        registry.dispatch("a", 1)
        registry.dispatch("a", 2)

        assert calls == ["self", "other", "other"]
        assert registry.count("a") == 1

    def test_listener_removed_mid_pass_is_not_called(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        calls = []
        second = None

        def remove_second(value):
            calls.append("first")
            registry.unregister(second)

        registry.register("a", remove_second)
        second = registry.register("a", lambda v: calls.append("second"))

        registry.dispatch("a", 1)

        assert calls == ["first"]

    def test_listener_added_mid_pass_fires_next_frame(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        calls = []

        def add_another(value):
            calls.append(("adder", value))
            registry.register("a", lambda v: calls.append(("added", v)))

        adder = registry.register("a", add_another)
        registry.dispatch("a", 1)
        adder.cancel()
        registry.dispatch("a", 2)

        assert calls == [("adder", 1), ("added", 2)]

    def test_raising_listener_does_not_stop_fan_out(self, caplog):
        registry: ListenerRegistry[int] = ListenerRegistry("test")
        calls = []

        def boom(value):
            raise RuntimeError("boom")

        registry.register("a", boom)
        registry.register("a", calls.append)

        with caplog.at_level(logging.ERROR):
            assert registry.dispatch("a", 5) == 2

        assert calls == [5]
        assert "raised" in caplog.text

    def test_same_callback_twice_gives_two_subscriptions(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        calls = []
        first = registry.register("a", calls.append)
        registry.register("a", calls.append)

        registry.unregister(first)
        registry.dispatch("a", 1)

        assert calls == [1]

    def test_unregister_is_idempotent(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        sub = registry.register("a", lambda v: None)

        registry.unregister(sub)
        registry.unregister(sub)
        sub.cancel()

        assert not sub.active
        assert registry.count() == 0

    def test_unregister_from_other_registry_ignored(self):
        first: ListenerRegistry[int] = ListenerRegistry()
        second: ListenerRegistry[int] = ListenerRegistry()
        sub = first.register("a", lambda v: None)

        second.unregister(sub)

        assert sub.active
        assert first.count("a") == 1

    def test_clear(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        sub = registry.register("a", lambda v: None)
        registry.clear()
        assert not sub.active
        assert registry.dispatch("a", 1) == 0


class TestSubscriptionScope:
    def test_close_unregisters_everything(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        calls = []

        with SubscriptionScope() as scope:
            scope.add(registry.register("a", calls.append))
            scope.add(registry.register("b", calls.append))

        assert scope.closed
        assert registry.count() == 0
        registry.dispatch("a", 1)
        assert calls == []

    def test_add_after_close_rejected(self):
        registry: ListenerRegistry[int] = ListenerRegistry()
        scope = SubscriptionScope()
        scope.close()

        sub = registry.register("a", lambda v: None)
        with pytest.raises(RuntimeError, match="closed"):
            scope.add(sub)
        assert not sub.active

    @pytest.mark.asyncio
    async def test_close_cancels_pending_writes(self):
        writes = []

        async def write():
            writes.append(1)

        scope = SubscriptionScope()
        coalescer = scope.own(WriteCoalescer(0.01))
        coalescer.submit("x", write)

        scope.close()
        await coalescer.flush()

        assert writes == []
        assert not coalescer.pending("x")


def test_three_listeners_second_unregisters_itself():
    registry: ListenerRegistry[str] = ListenerRegistry()
    calls = []
    registry.register(0x18, lambda v: calls.append(1))

    def second(value):
        calls.append(2)
        second_sub.cancel()

    second_sub = registry.register(0x18, second)
    registry.register(0x18, lambda v: calls.append(3))

    registry.dispatch(0x18, "frame")

    assert calls == [1, 2, 3]
