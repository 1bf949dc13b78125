"""Tests for servelet.signals: SignalBus and RegistryState."""

import pytest

from servelet.signals import RegistryState, Signal, SignalBus


class TestSignalBus:
    def test_handlers_run_in_subscription_order(self) -> None:
        bus = SignalBus()
        calls: list[str] = []
        bus.on("warning", lambda msg: calls.append("a:" + msg))
        bus.on(Signal.WARNING, lambda msg: calls.append("b:" + msg))

        bus.emit(Signal.WARNING, "hi")

        assert calls == ["a:hi", "b:hi"]

    def test_off_removes_handler(self) -> None:
        bus = SignalBus()
        calls: list[object] = []
        handler = calls.append
        bus.on("error", handler)
        bus.off("error", handler)

        bus.emit(Signal.ERROR, ValueError("x"))

        assert calls == []
        assert bus.count("error") == 0

    def test_off_unknown_handler_is_noop(self) -> None:
        bus = SignalBus()
        bus.off("ready", lambda: None)
        assert bus.count("ready") == 0

    def test_unknown_event_rejected(self) -> None:
        bus = SignalBus()
        with pytest.raises(ValueError):
            bus.on("finished", lambda: None)

    def test_failing_handler_does_not_stop_dispatch(self) -> None:
        bus = SignalBus()
        calls: list[str] = []

        def explode(msg: str) -> None:
            raise RuntimeError("handler bug")

        bus.on("warning", explode)
        bus.on("warning", calls.append)

        bus.emit(Signal.WARNING, "still delivered")

        assert calls == ["still delivered"]


class TestRegistryState:
    def test_initial_state(self) -> None:
        state = RegistryState(SignalBus())
        assert state.ready is False
        assert state.error is None
        assert state.warning is None
        assert state.pending == 0

    def test_error_publish_records_and_notifies_every_time(self) -> None:
        bus = SignalBus()
        seen: list[BaseException] = []
        bus.on("error", seen.append)
        state = RegistryState(bus)

        first, second = ValueError("one"), ValueError("two")
        state.publish(Signal.ERROR, first)
        state.publish(Signal.ERROR, second)

        assert seen == [first, second]
        assert state.error is second

    def test_clearing_does_not_notify(self) -> None:
        bus = SignalBus()
        seen: list[object] = []
        bus.on("warning", seen.append)
        state = RegistryState(bus)

        state.publish(Signal.WARNING, "careful")
        state.publish(Signal.WARNING, None)

        assert seen == ["careful"]
        assert state.warning is None

    def test_ready_is_one_way_and_fires_once(self) -> None:
        bus = SignalBus()
        fired: list[bool] = []
        bus.on("ready", lambda: fired.append(True))
        state = RegistryState(bus)

        state.publish(Signal.READY)
        state.publish(Signal.READY)

        assert state.ready is True
        assert fired == [True]

    def test_deferred_calls_replay_in_order_once(self) -> None:
        state = RegistryState(SignalBus())
        order: list[int] = []
        for i in range(5):
            assert state.defer(lambda i=i: order.append(i)) is True
        assert state.pending == 5

        state.publish(Signal.READY)
        state.publish(Signal.READY)

        assert order == [0, 1, 2, 3, 4]
        assert state.pending == 0

    def test_defer_after_ready_is_refused(self) -> None:
        state = RegistryState(SignalBus())
        state.publish(Signal.READY)
        assert state.defer(lambda: None) is False

    def test_ready_handlers_run_before_replay(self) -> None:
        bus = SignalBus()
        order: list[str] = []
        bus.on("ready", lambda: order.append("ready"))
        state = RegistryState(bus)
        state.defer(lambda: order.append("replay"))

        state.publish(Signal.READY)

        assert order == ["ready", "replay"]

    def test_failing_deferred_call_does_not_drop_the_rest(self) -> None:
        state = RegistryState(SignalBus())
        order: list[int] = []

        def explode() -> None:
            raise RuntimeError("callback bug")

        state.defer(lambda: order.append(1))
        state.defer(explode)
        state.defer(lambda: order.append(3))

        state.publish(Signal.READY)

        assert order == [1, 3]
