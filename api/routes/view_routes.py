# api/routes/view_routes.py
# Роутер слоя представления: граф, таймлайн, выделение

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from core.errors import ViewerError
from graph.models import GraphSnapshot
from graph.schema import node_to_dict
from viewer.inspector import layout_to_dict, mode_banner, selection_detail, status_indicator
from viewer.session import ViewerSession

router = APIRouter(prefix="/api/view", tags=["view"])

_session: ViewerSession | None = None


def init_session(s: ViewerSession | None) -> None:
    """Вызывается из server.py (и тестами) для подключения сессии."""
    global _session
    _session = s


def get_session() -> ViewerSession:
    """FastAPI dependency — возвращает ViewerSession."""
    if _session is None:
        raise HTTPException(status_code=503, detail={"error": "Viewer session not initialized"})
    return _session


class LiveBody(BaseModel):
    live: bool


class CursorBody(BaseModel):
    timestamp: int


class StepBody(BaseModel):
    delta_ms: int | None = None


class EdgeRef(BaseModel):
    source: str
    target: str


class SelectionBody(BaseModel):
    nodes: list[str] = Field(default_factory=list)
    edges: list[str | EdgeRef] = Field(default_factory=list)


def _timeline_dict(session: ViewerSession) -> dict:
    st = session.controller.state
    return {
        "mode": st.mode.value,
        "banner": mode_banner(st.mode),
        "cursor": st.cursor,
        "window_start": st.window_start,
        "window_end": st.window_end,
        "timers_running": session.controller.timers_running,
    }


def _resolve_edge(ref: str | EdgeRef, snapshot: GraphSnapshot | None) -> tuple[str, str]:
    if isinstance(ref, EdgeRef):
        return (ref.source, ref.target)
    # "a_b_c" может быть и a_b→c, и a→b_c
    keys = {e.edge_key() for e in (snapshot.edges if snapshot else ()) if e.edge_id == ref}
    if not keys:
        raise HTTPException(status_code=404, detail={"error": f"Edge {ref} not found"})
    if len(keys) > 1:
        raise HTTPException(status_code=409, detail={
            "error": f"Edge id {ref} is ambiguous, select it by source and target",
            "candidates": [list(k) for k in sorted(keys)],
        })
    return keys.pop()


@router.get("/graph")
async def view_graph(session: ViewerSession = Depends(get_session)):
    view = session.view()
    return {
        "timestamp": view.snapshot.timestamp if view.snapshot else None,
        **layout_to_dict(view.layout),
        "status": status_indicator(view.status),
    }


@router.get("/timeline")
async def view_timeline(session: ViewerSession = Depends(get_session)):
    return _timeline_dict(session)


@router.post("/timeline/live")
def set_live(body: LiveBody, session: ViewerSession = Depends(get_session)):
    session.controller.set_live(body.live)
    return _timeline_dict(session)


@router.post("/timeline/cursor")
def set_cursor(body: CursorBody, session: ViewerSession = Depends(get_session)):
    session.controller.set_cursor(body.timestamp)
    return _timeline_dict(session)


@router.post("/timeline/step")
def step(body: StepBody, session: ViewerSession = Depends(get_session)):
    session.controller.step(body.delta_ms)
    return _timeline_dict(session)


@router.get("/selection")
async def get_selection(session: ViewerSession = Depends(get_session)):
    view = session.view()
    return selection_detail(view.selection, view.snapshot)


@router.put("/selection")
async def put_selection(body: SelectionBody, session: ViewerSession = Depends(get_session)):
    snapshot = session.snapshot
    if snapshot is not None:
        known = snapshot.node_ids()
        missing = [n for n in body.nodes if n not in known]
        if missing and len(missing) == len(body.nodes):
            raise HTTPException(status_code=404, detail={"error": f"Node {missing[0]} not found"})
    edges = [_resolve_edge(ref, snapshot) for ref in body.edges]
    state = session.select(body.nodes, edges)
    return selection_detail(state, session.snapshot)


@router.delete("/selection")
async def delete_selection(session: ViewerSession = Depends(get_session)):
    state = session.clear_selection()
    return selection_detail(state, session.snapshot)


@router.post("/refresh")
def refresh(session: ViewerSession = Depends(get_session)):
    applied = session.refresh()
    return {"applied": applied, "status": status_indicator(session.status)}


@router.get("/root-cause")
def root_cause(session: ViewerSession = Depends(get_session)):
    try:
        candidates = session.root_causes()
    except ViewerError as e:
        raise HTTPException(status_code=502, detail={"error": str(e), "kind": type(e).__name__})
    return {
        "timestamp": session.controller.cursor,
        "candidates": [node_to_dict(n) for n in candidates],
    }
