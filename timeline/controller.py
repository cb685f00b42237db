# timeline/controller.py
"""Temporal controller: live/paused state machine over the timeline.

States are LIVE (initial) and PAUSED.

* LIVE runs two periodic tasks: the window tick slides
  ``[now - window_size, now]`` and moves the cursor to ``now``; the fetch
  tick requests an advisory "now" snapshot.
* Any manual cursor change (set_cursor, step) pauses first, pins the
  cursor and requests exactly one exact-timestamp snapshot.
* Resuming recomputes the window from ``now`` at once, restarts the
  timers and requests a fresh live snapshot.

The window only moves while live; stepping may leave the cursor outside
it.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from core.config import TimelineSettings, settings
from timeline.scheduler import Scheduler, TaskHandle, ThreadScheduler, now_ms

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    LIVE = "live"
    PAUSED = "paused"


@dataclass(frozen=True)
class TemporalState:
    mode: Mode
    cursor: int
    window_start: int
    window_end: int


@dataclass(frozen=True)
class FetchRequest:
    """Which snapshot to ask for: exact while paused, advisory while live."""
    timestamp: int
    exact: bool


class TemporalController:
    """Owns TemporalState; it changes only through the methods below."""

    def __init__(
        self,
        on_fetch: Callable[[FetchRequest], None] | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], int] = now_ms,
        cfg: TimelineSettings | None = None,
    ):
        self.cfg = cfg or settings.timeline
        self.on_fetch = on_fetch
        self.scheduler = scheduler or ThreadScheduler()
        self.clock = clock
        self._lock = threading.RLock()
        self._timers: list[TaskHandle] = []
        self._stopped = False
        now = clock()
        self._mode = Mode.LIVE
        self._cursor = now
        self._window = (now - self.cfg.window_size_ms, now)

    # -- read access -------------------------------------------------------

    @property
    def state(self) -> TemporalState:
        with self._lock:
            return TemporalState(self._mode, self._cursor, *self._window)

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def timers_running(self) -> bool:
        """Единственный источник правды: крутится ли live-таймер."""
        with self._lock:
            return any(t.running for t in self._timers)

    def current_request(self) -> FetchRequest:
        with self._lock:
            return FetchRequest(self._cursor, exact=self._mode is Mode.PAUSED)

    # -- transitions -------------------------------------------------------

    def start(self) -> None:
        """Запускает таймеры, если режим LIVE и они ещё не запущены."""
        with self._lock:
            if self._mode is Mode.LIVE and not self._timers and not self._stopped:
                self._start_timers()

    def set_live(self, live: bool) -> None:
        if live:
            with self._lock:
                if self._stopped:
                    logger.warning("timeline is shut down, resume ignored")
                    return
                if self._mode is Mode.LIVE:
                    return
                self._mode = Mode.LIVE
                self._advance_window()
                self._start_timers()
                request = FetchRequest(self._cursor, exact=False)
            logger.info("timeline resumed: live", extra={"timestamp_hint": request.timestamp})
            self._emit(request)
        else:
            with self._lock:
                if self._mode is Mode.PAUSED:
                    return
                self._mode = Mode.PAUSED
                timers, self._timers = self._timers, []
                cursor = self._cursor
            self._cancel(timers)
            logger.info("timeline paused at %d", cursor)

    def set_cursor(self, ts: int) -> None:
        """Ручная перемотка: всегда ставит PAUSED и запрашивает ровно ts."""
        self.set_live(False)
        with self._lock:
            self._cursor = int(ts)
            request = FetchRequest(self._cursor, exact=True)
        self._emit(request)

    def step(self, delta_ms: int | None = None) -> None:
        """Сдвиг курсора на ±delta_ms (по умолчанию step_ms). Окно не меняется."""
        delta = self.cfg.step_ms if delta_ms is None else delta_ms
        with self._lock:
            target = self._cursor + delta
        self.set_cursor(target)

    def shutdown(self) -> None:
        """Останавливает все таймеры и дожидается их потоков.

        Режим не меняется. После shutdown таймеры больше не запускаются.
        """
        with self._lock:
            self._stopped = True
            timers, self._timers = self._timers, []
        self._cancel(timers, wait=True)

    # -- internals ---------------------------------------------------------

    def _advance_window(self) -> None:
        now = self.clock()
        self._cursor = now
        self._window = (now - self.cfg.window_size_ms, now)

    def _start_timers(self) -> None:
        self._timers = [
            self.scheduler.every(self.cfg.window_tick_ms, self._on_window_tick, name="timeline-window"),
            self.scheduler.every(self.cfg.fetch_interval_ms, self._on_fetch_tick, name="timeline-fetch"),
        ]

    @staticmethod
    def _cancel(timers: list[TaskHandle], wait: bool = False) -> None:
        # без ожидания: тик, застрявший в fetch, отбросит сессия по seq
        for t in timers:
            t.cancel(wait=wait)

    def _on_window_tick(self) -> None:
        with self._lock:
            if self._mode is Mode.LIVE:
                self._advance_window()

    def _on_fetch_tick(self) -> None:
        with self._lock:
            if self._mode is not Mode.LIVE:
                return
            request = FetchRequest(self._cursor, exact=False)
        self._emit(request)

    def _emit(self, request: FetchRequest) -> None:
        if self.on_fetch is not None:
            self.on_fetch(request)
