# client/snapshot_client.py
# HTTP-клиент бэкенда телеметрии: снапшоты графа и кандидаты root cause

import logging

import requests

from core.config import settings
from core.errors import NetworkError, ProtocolError
from core.logging import log_duration
from graph.models import GraphSnapshot, Node
from graph.schema import parse_root_causes, parse_snapshot

logger = logging.getLogger(__name__)


class SnapshotClient:
    """Запрос/ответ без состояния и без повторов.

    Повторная попытка — это просто следующий тик опроса.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        """
        Args:
            base_url: корень API, например http://localhost:8081/api
            timeout: таймаут одного запроса в секундах
            session: готовая requests.Session (для тестов и пулинга соединений)
        """
        self.base_url = (base_url or settings.backend.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.backend.timeout_seconds
        self.session = session or requests.Session()

    def _get_json(self, path: str, params: dict) -> object:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"GET {path} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise NetworkError(
                f"GET {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"GET {path} returned malformed JSON") from e

    def fetch(self, timestamp_hint: int | None = None) -> GraphSnapshot:
        """Загружает снапшот графа.

        Args:
            timestamp_hint: момент в мс. В live-режиме — подсказка, точный
                момент выбирает сервер. None — параметр не передаётся,
                сервер отдаёт "сейчас".

        Raises:
            NetworkError: транспорт или не-2xx ответ
            ProtocolError: тело не соответствует схеме снапшота
        """
        params = {} if timestamp_hint is None else {"timestamp": int(timestamp_hint)}
        with log_duration(logger, "graph snapshot fetched", timestamp_hint=timestamp_hint):
            snapshot = parse_snapshot(self._get_json("/graph", params))
        return snapshot

    def fetch_root_causes(self, timestamp: int) -> list[Node]:
        """Кандидаты в первопричину на момент timestamp."""
        payload = self._get_json("/root-cause", {"timestamp": int(timestamp)})
        return parse_root_causes(payload)

    def close(self) -> None:
        self.session.close()
