# api/server.py
# FastAPI-сервер просмотрщика причинного графа

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import view_routes
from api.routes.view_routes import init_session, router as view_router
from client.snapshot_client import SnapshotClient
from core.config import settings
from core.logging import RequestLoggingMiddleware, get_logger, setup_logging
from timeline.scheduler import ThreadScheduler, now_ms
from viewer.inspector import mode_banner, status_indicator
from viewer.session import ViewerSession

logger = get_logger(__name__)


def build_session() -> ViewerSession:
    """Сессия по умолчанию: реальный бэкенд из настроек и потоковые таймеры."""
    return ViewerSession(SnapshotClient(), scheduler=ThreadScheduler(), cfg=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("DEBUG" if settings.debug else None)
    app.state.start_time = time.time()
    owned = None
    if view_routes._session is None:
        owned = build_session()
        init_session(owned)
        owned.start()
        logger.info("viewer session started against %s", settings.backend.base_url)
    try:
        yield
    finally:
        if owned is not None:
            owned.close()
            init_session(None)


app = FastAPI(title="Causal Graph Viewer API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
app.include_router(view_router)


@app.get("/api/health")
async def health():
    now = time.time()
    uptime = now - getattr(app.state, "start_time", now)
    session = view_routes._session
    if session is None:
        return {"status": "error", "version": app.version, "uptime_seconds": round(uptime, 1),
                "detail": "viewer session not initialized"}

    view = session.view()
    indicator = status_indicator(view.status)
    snapshot_age = None
    if view.snapshot is not None:
        snapshot_age = round((now_ms() - view.snapshot.timestamp) / 1000, 1)

    return {
        "status": "ok" if indicator["ok"] else "degraded",
        "version": app.version,
        "uptime_seconds": round(uptime, 1),
        "mode": view.temporal.mode.value,
        "banner": mode_banner(view.temporal.mode),
        "connection": indicator,
        "snapshot_timestamp": view.snapshot.timestamp if view.snapshot else None,
        "snapshot_age_seconds": snapshot_age,
        "timers_running": session.controller.timers_running,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
