"""Unit tests for the trailing-edge Debouncer."""

import asyncio
import threading

import pytest

from entitykit.infrastructure.persistence.debouncer import Debouncer, loop_timer, thread_timer


class TestDebouncer:

    def test_burst_collapses_into_last_call(self, timers):
        calls = []
        debouncer = Debouncer(0.25, lambda *args: calls.append(args), timers)

        debouncer.call(1)
        debouncer.call(2)
        debouncer.call(3)

        assert calls == []
        assert debouncer.pending is True
        assert len(timers.timers) == 3
        assert timers.timers[0].interval == 0.25

        timers.fire_all()

        assert calls == [(3,)]
        assert debouncer.pending is False

    def test_zero_wait_calls_immediately(self, timers):
        calls = []
        debouncer = Debouncer(0, calls.append, timers)

        debouncer.call("now")

        assert calls == ["now"]
        assert timers.timers == []

    def test_flush(self, timers):
        calls = []
        debouncer = Debouncer(1.0, calls.append, timers)

        assert debouncer.flush() is False
        debouncer.call("x")
        assert debouncer.flush() is True
        assert calls == ["x"]
        assert timers.active == []

    def test_cancel_drops_pending_call(self, timers):
        calls = []
        debouncer = Debouncer(1.0, calls.append, timers)

        debouncer.call("x")
        debouncer.cancel()
        timers.fire_all()

        assert calls == []
        assert debouncer.pending is False

    @pytest.mark.slow
    def test_thread_timer_fires(self):
        fired = threading.Event()
        debouncer = Debouncer(0.01, fired.set, thread_timer)

        debouncer.call()

        assert fired.wait(2.0) is True


class TestLoopTimer:

    @pytest.mark.asyncio
    async def test_fires_once_on_the_loop_thread(self):
        loop = asyncio.get_running_loop()
        calls = []
        debouncer = Debouncer(
            0.01,
            lambda value: calls.append((value, threading.get_ident())),
            loop_timer(loop),
        )

        debouncer.call("a")
        debouncer.call("b")
        await asyncio.sleep(0.1)

        assert calls == [("b", threading.get_ident())]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_cancel_before_firing(self):
        calls = []
        debouncer = Debouncer(0.01, calls.append, loop_timer(asyncio.get_running_loop()))

        debouncer.call("a")
        debouncer.cancel()
        await asyncio.sleep(0.05)

        assert calls == []
