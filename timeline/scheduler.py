# timeline/scheduler.py
# Отменяемые периодические задачи для live-режима

import logging
import threading
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Текущее время в миллисекундах с эпохи."""
    return int(time.time() * 1000)


class TaskHandle(Protocol):
    def cancel(self, wait: bool = False) -> None: ...

    @property
    def running(self) -> bool: ...


class Scheduler(Protocol):
    def every(self, interval_ms: int, callback: Callable[[], None], name: str = "") -> TaskHandle: ...


class PeriodicTask:
    """Вызывает callback каждые interval_ms в фоновом потоке.

    Первый вызов — через interval_ms после start(). Исключение в callback
    логируется и не останавливает задачу.
    """

    def __init__(self, interval_ms: int, callback: Callable[[], None], name: str = ""):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.interval_ms = interval_ms
        self.callback = callback
        self.name = name or getattr(callback, "__name__", "periodic-task")
        self._stop = threading.Event()
        self.thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self.thread is not None and not self._stop.is_set()

    def start(self) -> "PeriodicTask":
        if self.thread is not None:
            return self
        self.thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self.thread.start()
        logger.debug("periodic task %s started: every %d ms", self.name, self.interval_ms)
        return self

    def cancel(self, wait: bool = False) -> None:
        """Останавливает задачу. Повторный вызов безопасен.

        По умолчанию не ждёт: callback, который уже выполняется, доработает
        в фоне, новых вызовов не будет. wait=True дожидается потока.
        """
        first = not self._stop.is_set()
        self._stop.set()
        if wait and self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=5)
        if first:
            logger.debug("periodic task %s cancelled", self.name)

    def _run_loop(self) -> None:
        while not self._stop.wait(self.interval_ms / 1000):
            try:
                self.callback()
            except Exception:
                logger.exception("periodic task %s failed", self.name)


class ThreadScheduler:
    """Scheduler на потоках — по одному потоку на задачу."""

    def every(self, interval_ms: int, callback: Callable[[], None], name: str = "") -> PeriodicTask:
        return PeriodicTask(interval_ms, callback, name).start()
