"""Real-time tests for the periodic schedulers.

Each test arms a genuine timer for a few hundred milliseconds. Stop requests
are sent to the main thread with ``pthread_kill`` (or ``raise_signal``) so
they never land on a helper thread.
"""

from __future__ import annotations

import signal
import threading
import time
from dataclasses import dataclass, field

import pytest

from termwatch.duration import ZERO, Duration
from termwatch.errors import TimerError, WaitError
from termwatch.scheduler import (
    Event,
    SelectScheduler,
    SignalTimerScheduler,
    create_scheduler,
)

needs_sigwaitinfo = pytest.mark.skipif(
    not SignalTimerScheduler.is_supported(), reason="sigwaitinfo/setitimer unavailable"
)
needs_pthread_kill = pytest.mark.skipif(
    not hasattr(signal, "pthread_kill"), reason="pthread_kill unavailable"
)

SCHEDULERS = [
    pytest.param(SignalTimerScheduler, marks=needs_sigwaitinfo, id="signal"),
    pytest.param(SelectScheduler, id="select"),
]

INTERVAL = Duration.from_milliseconds(20)


def _interrupt_main_thread() -> None:
    if hasattr(signal, "pthread_kill"):
        signal.pthread_kill(threading.main_thread().ident, signal.SIGINT)
    else:
        signal.raise_signal(signal.SIGINT)


@pytest.mark.parametrize("factory", SCHEDULERS)
def test_ticks_follow_cadence_without_drift(factory) -> None:
    n = 10
    with factory() as scheduler:
        started = time.monotonic()
        scheduler.arm(INTERVAL)
        for _ in range(n):
            assert scheduler.next_event() is Event.TICK
        total = time.monotonic() - started

    expected = n * INTERVAL.to_seconds()
    assert total >= expected * 0.95
    assert total < expected + 0.1


@pytest.mark.parametrize("factory", SCHEDULERS)
def test_slow_consumer_gets_one_tick_not_a_backlog(factory) -> None:
    with factory() as scheduler:
        armed_at = time.monotonic()
        scheduler.arm(INTERVAL)
        time.sleep(0.15)  # ~7 expiries go unconsumed

        t0 = time.monotonic()
        assert scheduler.next_event() is Event.TICK
        assert time.monotonic() - t0 < 0.015

        ticks = 1
        while time.monotonic() - armed_at < 0.25:
            assert scheduler.next_event() is Event.TICK
            ticks += 1

    # A backlog would deliver the 7 missed expiries plus the ~5 new ones.
    assert ticks <= 8


@needs_pthread_kill
@pytest.mark.parametrize("factory", SCHEDULERS)
def test_interrupt_unblocks_wait_with_stop(factory) -> None:
    with factory() as scheduler:
        scheduler.arm(Duration(5, 0))
        _interrupt_main_thread()
        t0 = time.monotonic()
        assert scheduler.next_event() is Event.STOP
        assert time.monotonic() - t0 < 1.0


@needs_pthread_kill
@pytest.mark.parametrize("factory", SCHEDULERS)
def test_pending_stop_wins_over_pending_tick(factory) -> None:
    with factory() as scheduler:
        scheduler.arm(INTERVAL)
        time.sleep(0.05)
        _interrupt_main_thread()
        assert scheduler.next_event() is Event.STOP


@pytest.mark.parametrize("factory", SCHEDULERS)
def test_zero_interval_is_rejected(factory) -> None:
    scheduler = factory()
    with pytest.raises(TimerError):
        scheduler.arm(ZERO)
    assert not scheduler.armed


@pytest.mark.parametrize("factory", SCHEDULERS)
def test_double_arm_is_rejected(factory) -> None:
    with factory() as scheduler:
        scheduler.arm(INTERVAL)
        with pytest.raises(TimerError):
            scheduler.arm(INTERVAL)


@pytest.mark.parametrize("factory", SCHEDULERS)
def test_arm_off_main_thread_is_rejected(factory) -> None:
    scheduler = factory()
    errors: list[BaseException] = []

    def arm() -> None:
        try:
            scheduler.arm(INTERVAL)
        except TimerError as exc:
            errors.append(exc)

    worker = threading.Thread(target=arm)
    worker.start()
    worker.join()
    assert len(errors) == 1
    assert not scheduler.armed


@pytest.mark.parametrize("factory", SCHEDULERS)
def test_next_event_requires_armed_timer(factory) -> None:
    with pytest.raises(WaitError):
        factory().next_event()


@needs_sigwaitinfo
def test_signal_disarm_drains_timer_and_restores_mask() -> None:
    before = signal.pthread_sigmask(signal.SIG_BLOCK, [])
    scheduler = SignalTimerScheduler()
    scheduler.arm(Duration.from_milliseconds(5))
    time.sleep(0.03)  # leave a SIGALRM pending
    scheduler.disarm()
    scheduler.disarm()

    assert signal.pthread_sigmask(signal.SIG_BLOCK, []) == before
    assert signal.getitimer(signal.ITIMER_REAL) == (0.0, 0.0)
    assert not scheduler.armed


def test_select_disarm_restores_handlers() -> None:
    before = signal.getsignal(signal.SIGINT)
    scheduler = SelectScheduler()
    scheduler.arm(INTERVAL)
    assert signal.getsignal(signal.SIGINT) is not before
    scheduler.disarm()
    scheduler.disarm()
    assert signal.getsignal(signal.SIGINT) is before


def test_create_scheduler_backends() -> None:
    assert isinstance(create_scheduler("select"), SelectScheduler)
    auto = create_scheduler("auto")
    if SignalTimerScheduler.is_supported():
        assert isinstance(auto, SignalTimerScheduler)
        assert isinstance(create_scheduler("signal"), SignalTimerScheduler)
    else:
        assert isinstance(auto, SelectScheduler)
    with pytest.raises(ValueError):
        create_scheduler("busy-loop")


@needs_pthread_kill
def test_select_handles_interval_beyond_epoll_timeout_range() -> None:
    # About 34.7 days, longer than a single epoll timeout can express.
    with SelectScheduler() as scheduler:
        scheduler.arm(Duration(3_000_000, 0))
        _interrupt_main_thread()
        assert scheduler.next_event() is Event.STOP


def test_select_long_interval_waits_in_bounded_chunks() -> None:
    @dataclass
    class RecordingSelector:
        timeouts: list[float] = field(default_factory=list)

        def select(self, timeout: float | None = None) -> list:
            self.timeouts.append(timeout)
            raise InterruptedError("stop after the first wait")

    scheduler = SelectScheduler()
    with scheduler:
        scheduler.arm(Duration(3_000_000, 0))
        real_selector = scheduler._selector
        recorder = RecordingSelector()
        scheduler._selector = recorder
        try:
            with pytest.raises(WaitError):
                scheduler.next_event()
        finally:
            scheduler._selector = real_selector
    assert recorder.timeouts == [3600.0]


def test_scheduler_base_requires_disarm() -> None:
    from termwatch.scheduler import _SchedulerBase

    class NoDisarm(_SchedulerBase):
        pass

    with pytest.raises(TypeError):
        NoDisarm()
