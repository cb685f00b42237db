# viewer/session.py
"""Viewer session: wires timeline → snapshot client → layout → selection.

Every fetch is tagged with a monotonically increasing sequence number at
issue time. Only the response to the most recently issued request may be
committed; anything older is discarded on arrival, whether it succeeded
or failed. While a fetch is in flight the previous snapshot and layout
stay visible.

Commits happen under one lock, so timer threads and API handlers never
observe a half-applied snapshot.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from client.snapshot_client import SnapshotClient
from core.config import AppSettings, settings
from core.errors import ViewerError
from graph.layout import layout as compute_layout
from graph.models import GraphLayout, GraphSnapshot, Node
from selection.coordinator import SelectionCoordinator, SelectionState
from timeline.controller import FetchRequest, Mode, TemporalController, TemporalState
from timeline.scheduler import Scheduler, now_ms

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class ConnectionStatus:
    state: ConnectionState = ConnectionState.CONNECTING
    last_error: str | None = None
    error_kind: str | None = None
    last_success_at: int | None = None     # timestamp последнего применённого снапшота
    consecutive_failures: int = 0

    @property
    def is_online(self) -> bool:
        return self.state is ConnectionState.ONLINE


@dataclass(frozen=True)
class FetchTicket:
    seq: int
    request: FetchRequest


@dataclass(frozen=True)
class ViewState:
    """Снимок всего, что нужно слою представления. Только чтение."""
    snapshot: GraphSnapshot | None
    layout: GraphLayout
    temporal: TemporalState
    selection: SelectionState
    status: ConnectionStatus


class ViewerSession:
    def __init__(
        self,
        client: SnapshotClient,
        scheduler: Scheduler | None = None,
        clock: Callable[[], int] = now_ms,
        cfg: AppSettings | None = None,
    ):
        self.cfg = cfg or settings
        self.client = client
        self.selection = SelectionCoordinator()
        self.controller = TemporalController(
            on_fetch=self.request_fetch,
            scheduler=scheduler,
            clock=clock,
            cfg=self.cfg.timeline,
        )
        self._lock = threading.RLock()
        self._seq = 0
        self._active_seq = 0
        self._snapshot: GraphSnapshot | None = None
        self._layout = GraphLayout()
        self._status = ConnectionStatus()
        self._closed = False

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Первичная загрузка и запуск live-таймеров."""
        self.refresh()
        self.controller.start()

    def close(self) -> None:
        """Останавливает таймеры и закрывает HTTP-сессию. Повторно — no-op."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.controller.shutdown()
        self.client.close()
        logger.info("viewer session closed")

    # -- fetch pipeline ------------------------------------------------------

    def issue(self, request: FetchRequest) -> FetchTicket:
        """Регистрирует запрос и делает его единственным активным."""
        with self._lock:
            self._seq += 1
            self._active_seq = self._seq
            ticket = FetchTicket(self._seq, request)
        logger.debug("fetch issued", extra={"fetch_seq": ticket.seq, "timestamp_hint": request.timestamp})
        return ticket

    def complete(
        self,
        ticket: FetchTicket,
        snapshot: GraphSnapshot | None = None,
        error: ViewerError | None = None,
    ) -> bool:
        """Применяет ответ на ticket, если он ещё актуален.

        Returns:
            True если снапшот принят и отображается.
        """
        with self._lock:
            if ticket.seq != self._active_seq:
                logger.info(
                    "stale response discarded (active seq %d)", self._active_seq,
                    extra={"fetch_seq": ticket.seq, "timestamp_hint": ticket.request.timestamp},
                )
                return False
            if error is None and snapshot is None:
                raise ValueError("complete() needs a snapshot or an error")

            if error is None:
                try:
                    new_layout = compute_layout(snapshot.nodes, snapshot.edges, self.cfg.layout)
                except ViewerError as e:
                    error = e

            if error is not None:
                self._fail(ticket, error)
                return False

            self._snapshot = snapshot
            self._layout = new_layout
            self.selection.revalidate(snapshot)
            self._status = ConnectionStatus(
                state=ConnectionState.ONLINE,
                last_success_at=snapshot.timestamp,
            )
        if ticket.request.exact and snapshot.timestamp != ticket.request.timestamp:
            logger.debug("backend snapped %d to %d", ticket.request.timestamp, snapshot.timestamp)
        logger.info(
            "snapshot applied: %d nodes, %d edges", len(snapshot.nodes), len(snapshot.edges),
            extra={"fetch_seq": ticket.seq, "timestamp_hint": ticket.request.timestamp},
        )
        return True

    def _fail(self, ticket: FetchTicket, error: ViewerError) -> None:
        prev = self._status
        self._status = ConnectionStatus(
            state=ConnectionState.OFFLINE,
            last_error=str(error),
            error_kind=type(error).__name__,
            last_success_at=prev.last_success_at,
            consecutive_failures=prev.consecutive_failures + 1,
        )
        logger.warning(
            "fetch failed, keeping previous snapshot: %s: %s", type(error).__name__, error,
            extra={"fetch_seq": ticket.seq, "timestamp_hint": ticket.request.timestamp},
        )

    def request_fetch(self, request: FetchRequest) -> bool:
        """Выдать запрос, сходить в бэкенд, применить ответ (если актуален).

        Live-запрос уходит без timestamp: "сейчас" определяет сервер.
        Live-запрос, выданный уже после паузы, и любой запрос после close()
        не отправляются.
        """
        with self._lock:
            if self._closed:
                logger.debug("session closed, fetch skipped")
                return False
            if not request.exact and self.controller.mode is Mode.PAUSED:
                logger.debug("live fetch after pause skipped", extra={"timestamp_hint": request.timestamp})
                return False
            ticket = self.issue(request)
        try:
            snapshot = self.client.fetch(request.timestamp if request.exact else None)
        except ViewerError as e:
            return self.complete(ticket, error=e)
        return self.complete(ticket, snapshot=snapshot)

    def refresh(self) -> bool:
        """Ручной повтор: один запрос для текущего режима."""
        return self.request_fetch(self.controller.current_request())

    # -- selection -----------------------------------------------------------

    def select(self, nodes=(), edges=()) -> SelectionState:
        return self.selection.on_selection_change(nodes, edges)

    def clear_selection(self) -> SelectionState:
        return self.selection.clear_selection()

    # -- presentation --------------------------------------------------------

    @property
    def snapshot(self) -> GraphSnapshot | None:
        return self._snapshot

    @property
    def layout(self) -> GraphLayout:
        return self._layout

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def view(self) -> ViewState:
        with self._lock:
            return ViewState(
                snapshot=self._snapshot,
                layout=self._layout,
                temporal=self.controller.state,
                selection=self.selection.state,
                status=self._status,
            )

    def root_causes(self) -> list[Node]:
        """Кандидаты root cause на текущий курсор (ошибки пробрасываются)."""
        return self.client.fetch_root_causes(self.controller.cursor)
