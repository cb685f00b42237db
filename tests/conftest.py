# tests/conftest.py
# Shared pytest fixtures: fake clock, manual scheduler, fake snapshot client

import pytest

from core.config import AppSettings
from core.errors import ViewerError
from graph.models import Edge, GraphSnapshot, HealthStatus, Node
from viewer.session import ViewerSession


def make_snapshot(ts: int, node_ids=("a", "b", "c"), edges=(("a", "b"), ("b", "c"))) -> GraphSnapshot:
    """Snapshot with the given node ids and (source, target) pairs."""
    return GraphSnapshot(
        timestamp=ts,
        nodes=[Node(id=n, service_name=n) for n in node_ids],
        edges=[Edge(source=s, target=t, causal_confidence=0.5) for s, t in edges],
    )


class FakeClock:
    """Milliseconds clock that only moves when told to."""

    def __init__(self, start: int = 1_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


class ManualTask:
    def __init__(self, interval_ms, callback, name, due):
        self.interval_ms = interval_ms
        self.callback = callback
        self.name = name
        self.due = due
        self.running = True

    def cancel(self, wait=False):
        self.running = False


class ManualScheduler:
    """Deterministic scheduler: tasks fire only inside advance()."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.tasks: list[ManualTask] = []

    def every(self, interval_ms, callback, name=""):
        task = ManualTask(interval_ms, callback, name, self.clock.now + interval_ms)
        self.tasks.append(task)
        return task

    @property
    def active(self) -> list[ManualTask]:
        return [t for t in self.tasks if t.running]

    def advance(self, ms: int) -> None:
        end = self.clock.now + ms
        while True:
            due = [t for t in self.tasks if t.running and t.due <= end]
            if not due:
                break
            task = min(due, key=lambda t: (t.due, self.tasks.index(t)))
            self.clock.now = task.due
            task.due += task.interval_ms
            task.callback()
        self.clock.now = end


class FakeClient:
    """Stands in for SnapshotClient; records every fetch hint."""

    def __init__(self, clock: FakeClock | None = None):
        self.clock = clock
        self.calls: list[int | None] = []
        self.root_cause_calls: list[int] = []
        self.error: ViewerError | None = None
        self.snapshots: dict[int, GraphSnapshot] = {}
        self.default_nodes = ("a", "b", "c")
        self.default_edges = (("a", "b"), ("b", "c"))
        self.candidates: list[Node] = []
        self.closed = False

    def fetch(self, timestamp_hint=None):
        self.calls.append(timestamp_hint)
        if self.error is not None:
            raise self.error
        ts = timestamp_hint if timestamp_hint is not None else (self.clock() if self.clock else 0)
        if ts in self.snapshots:
            return self.snapshots[ts]
        return make_snapshot(ts, self.default_nodes, self.default_edges)

    def fetch_root_causes(self, timestamp):
        self.root_cause_calls.append(timestamp)
        if self.error is not None:
            raise self.error
        return list(self.candidates)

    def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock(1_000)


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def fake_client(clock):
    return FakeClient(clock)


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def session(fake_client, scheduler, clock, app_settings):
    s = ViewerSession(fake_client, scheduler=scheduler, clock=clock, cfg=app_settings)
    yield s
    s.close()


@pytest.fixture
def sample_nodes():
    """Small service graph: gateway → order → payment → payments-db"""
    return [
        Node(id="api-gateway", service_name="api-gateway"),
        Node(id="order-svc", service_name="order-svc", health_status=HealthStatus.DEGRADED,
             amplification_score=1.8, downstream_failures=1),
        Node(id="payment-svc", service_name="payment-svc", health_status=HealthStatus.DEGRADED,
             amplification_score=1.2),
        Node(id="payments-db", service_name="payments-db", health_status=HealthStatus.DOWN,
             amplification_score=2.6, downstream_failures=3),
    ]


@pytest.fixture
def sample_edges():
    return [
        Edge(source="api-gateway", target="order-svc", causal_confidence=0.3),
        Edge(source="order-svc", target="payment-svc", causal_confidence=0.9, is_active=True),
        Edge(source="payment-svc", target="payments-db", causal_confidence=0.95, is_active=True),
    ]


@pytest.fixture
def sample_snapshot(sample_nodes, sample_edges):
    return GraphSnapshot(timestamp=1_770_717_600_000, nodes=sample_nodes, edges=sample_edges)


@pytest.fixture
def sample_payload():
    """Wire-format body as the backend sends it (zero values omitted)."""
    return {
        "timestamp": 1_770_717_600_000,
        "nodes": [
            {"id": "api-gateway", "service_name": "api-gateway"},
            {"id": "payments-db", "service_name": "payments-db", "health_status": 2,
             "amplification_score": 2.5, "downstream_failures": 3},
        ],
        "edges": [
            {"source": "api-gateway", "target": "payments-db", "causal_confidence": 0.7, "is_active": True},
        ],
    }
