"""Periodic tick/stop event sources.

Both schedulers expose a single blocking call, :meth:`next_event`, which
returns ``Event.TICK`` when the repeating timer expired at least once since
the previous call, or ``Event.STOP`` when an interrupt arrived. Expiries that
pile up while the consumer is busy are delivered as one tick.

* ``SignalTimerScheduler`` arms a kernel interval timer (``setitimer``) and
  collects its SIGALRM together with the stop signals through
  ``sigwaitinfo``. The signals stay blocked, so no handler ever runs.
* ``SelectScheduler`` works wherever ``sigwaitinfo`` does not (macOS,
  Windows). Ticks fall on absolute monotonic deadlines and stop signals are
  routed to a socket with ``signal.set_wakeup_fd``; a selector waits on the
  socket until the next deadline.
"""

from __future__ import annotations

import logging
import selectors
import signal
import socket
import threading
from abc import ABC, abstractmethod
from enum import Enum
from types import FrameType, TracebackType
from typing import Iterable, Protocol

from .clock import Clock, RealClock
from .duration import NSEC_PER_SEC, Duration
from .errors import TimerError, WaitError

_log = logging.getLogger(__name__)

DEFAULT_STOP_SIGNALS: tuple[int, ...] = (signal.SIGINT,)
BACKENDS = ("auto", "signal", "select")

# setitimer() has microsecond resolution; a smaller period would disarm it.
_ITIMER_RESOLUTION_NS = 1_000

# Longest single selector wait; epoll rejects timeouts past ~24.8 days.
_MAX_SELECT_TIMEOUT_S = 3600.0


class Event(str, Enum):
    TICK = "tick"
    STOP = "stop"


class PeriodicScheduler(Protocol):
    def arm(self, interval: Duration) -> None: ...
    def next_event(self) -> Event: ...
    def disarm(self) -> None: ...


def _check_can_arm(interval: Duration, armed: bool) -> None:
    if interval.is_zero():
        raise TimerError("refresh interval must be greater than zero")
    if armed:
        raise TimerError("refresh timer is already armed")
    if threading.current_thread() is not threading.main_thread():
        raise TimerError("refresh timer must be armed from the main thread")


def _ignore_signal(signum: int, frame: FrameType | None) -> None:
    # Signals routed here are read back synchronously (sigwaitinfo or the
    # wakeup fd); the handler itself has nothing to do.
    return None


class _SchedulerBase(ABC):
    _armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    @abstractmethod
    def disarm(self) -> None: ...

    def __enter__(self) -> _SchedulerBase:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.disarm()


class SignalTimerScheduler(_SchedulerBase):
    """Kernel interval timer whose signal is consumed synchronously."""

    def __init__(self, *, stop_signals: Iterable[int] = DEFAULT_STOP_SIGNALS) -> None:
        if not self.is_supported():
            raise TimerError("signal-based interval timers are not available on this platform")
        self._stop_signals = frozenset(int(s) for s in stop_signals)
        self._timer_signal = signal.SIGALRM
        self._wait_set = self._stop_signals | {self._timer_signal}
        self._previous_mask: set[int] | None = None
        self._previous_alarm_handler: object = None

    @staticmethod
    def is_supported() -> bool:
        return all(
            hasattr(signal, name)
            for name in ("setitimer", "sigwaitinfo", "sigtimedwait", "pthread_sigmask", "SIGALRM")
        )

    def arm(self, interval: Duration) -> None:
        _check_can_arm(interval, self._armed)

        period_s = max(interval.total_nanoseconds, _ITIMER_RESOLUTION_NS) / NSEC_PER_SEC
        # A thread that has SIGALRM unblocked must not die of the default action.
        self._previous_alarm_handler = signal.signal(self._timer_signal, _ignore_signal)
        self._previous_mask = signal.pthread_sigmask(signal.SIG_BLOCK, self._wait_set)
        try:
            signal.setitimer(signal.ITIMER_REAL, period_s, period_s)
        except (OSError, OverflowError, ValueError) as exc:
            signal.pthread_sigmask(signal.SIG_SETMASK, self._previous_mask)
            self._previous_mask = None
            self._restore_alarm_handler()
            raise TimerError(f"couldn't init refresh timer: {exc}") from exc

        self._armed = True
        _log.debug("interval timer armed with period %.9fs", period_s)

    def next_event(self) -> Event:
        if not self._armed:
            raise WaitError("refresh timer is not armed")
        try:
            info = signal.sigwaitinfo(self._wait_set)
            if info.si_signo in self._stop_signals:
                return Event.STOP
            # A stop that is already pending takes precedence over the tick.
            if signal.sigpending() & self._stop_signals:
                signal.sigtimedwait(self._stop_signals, 0)
                return Event.STOP
        except OSError as exc:
            raise WaitError(f"error waiting for timer signal: {exc}") from exc
        return Event.TICK

    def disarm(self) -> None:
        if not self._armed:
            return
        self._armed = False
        try:
            signal.setitimer(signal.ITIMER_REAL, 0)
            # Unblocking a pending SIGALRM would kill the process.
            while signal.sigtimedwait({self._timer_signal}, 0) is not None:
                pass
        finally:
            assert self._previous_mask is not None
            signal.pthread_sigmask(signal.SIG_SETMASK, self._previous_mask)
            self._previous_mask = None
            self._restore_alarm_handler()
        _log.debug("interval timer disarmed")

    def _restore_alarm_handler(self) -> None:
        handler = self._previous_alarm_handler
        signal.signal(self._timer_signal, handler if handler is not None else signal.SIG_DFL)
        self._previous_alarm_handler = None


class SelectScheduler(_SchedulerBase):
    """Deadline ticker plus signal wakeup socket, multiplexed with a selector."""

    def __init__(
        self,
        *,
        stop_signals: Iterable[int] = DEFAULT_STOP_SIGNALS,
        clock: Clock | None = None,
    ) -> None:
        self._stop_signals = frozenset(int(s) for s in stop_signals)
        self._clock: Clock = clock if clock is not None else RealClock()
        self._interval_ns = 0
        self._next_deadline_ns = 0
        self._selector: selectors.BaseSelector | None = None
        self._rsock: socket.socket | None = None
        self._wsock: socket.socket | None = None
        self._previous_wakeup_fd: int | None = None
        self._previous_handlers: dict[int, object] = {}

    def arm(self, interval: Duration) -> None:
        _check_can_arm(interval, self._armed)

        try:
            self._rsock, self._wsock = socket.socketpair()
            self._rsock.setblocking(False)
            self._wsock.setblocking(False)
            self._previous_wakeup_fd = signal.set_wakeup_fd(
                self._wsock.fileno(), warn_on_full_buffer=False
            )
            for signum in self._stop_signals:
                self._previous_handlers[signum] = signal.signal(signum, _ignore_signal)
            self._selector = selectors.DefaultSelector()
            self._selector.register(self._rsock, selectors.EVENT_READ)
        except (OSError, ValueError) as exc:
            self._release()
            raise TimerError(f"couldn't init refresh timer: {exc}") from exc

        self._interval_ns = interval.total_nanoseconds
        self._next_deadline_ns = self._clock.now_ns() + self._interval_ns
        self._armed = True
        _log.debug("deadline ticker armed with period %d ns", self._interval_ns)

    def next_event(self) -> Event:
        if not self._armed:
            raise WaitError("refresh timer is not armed")
        assert self._selector is not None

        while True:
            remaining_ns = self._next_deadline_ns - self._clock.now_ns()
            try:
                # Always poll, even when a deadline has passed, so a pending stop wins.
                timeout_s = min(max(remaining_ns, 0) / NSEC_PER_SEC, _MAX_SELECT_TIMEOUT_S)
                ready = self._selector.select(timeout_s)
            except (OSError, OverflowError, ValueError) as exc:
                raise WaitError(f"error waiting for refresh deadline: {exc}") from exc
            if ready and self._drain_wakeup():
                return Event.STOP

            now_ns = self._clock.now_ns()
            if now_ns >= self._next_deadline_ns:
                missed = (now_ns - self._next_deadline_ns) // self._interval_ns
                self._next_deadline_ns += (missed + 1) * self._interval_ns
                if missed:
                    _log.debug("coalesced %d missed ticks", missed)
                return Event.TICK

    def disarm(self) -> None:
        if not self._armed:
            return
        self._armed = False
        self._release()
        _log.debug("deadline ticker disarmed")

    def _drain_wakeup(self) -> bool:
        assert self._rsock is not None
        stop = False
        while True:
            try:
                data = self._rsock.recv(512)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as exc:
                raise WaitError(f"error reading signal wakeup socket: {exc}") from exc
            if not data:
                break
            if any(signum in self._stop_signals for signum in data):
                stop = True
        return stop

    def _release(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous_handlers.clear()
        if self._previous_wakeup_fd is not None:
            signal.set_wakeup_fd(self._previous_wakeup_fd)
            self._previous_wakeup_fd = None
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        for sock in (self._rsock, self._wsock):
            if sock is not None:
                sock.close()
        self._rsock = None
        self._wsock = None


def create_scheduler(
    backend: str = "auto",
    *,
    stop_signals: Iterable[int] = DEFAULT_STOP_SIGNALS,
) -> SignalTimerScheduler | SelectScheduler:
    """Build the scheduler for ``backend`` (one of :data:`BACKENDS`)."""

    if backend == "auto":
        backend = "signal" if SignalTimerScheduler.is_supported() else "select"
    _log.debug("using %s scheduler backend", backend)
    if backend == "signal":
        return SignalTimerScheduler(stop_signals=stop_signals)
    if backend == "select":
        return SelectScheduler(stop_signals=stop_signals)
    raise ValueError(f"unknown scheduler backend {backend!r}")
