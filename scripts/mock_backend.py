# scripts/mock_backend.py
"""Simulated telemetry backend serving the snapshot wire format.

    uvicorn scripts.mock_backend:app --port 8081
"""

import time

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from scripts.generate_mock_graph import generate_snapshot, root_cause_candidates

app = FastAPI(title="Mock causality backend", version="0.1.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET", "OPTIONS"], allow_headers=["*"])


def _resolve(ts: int) -> int:
    # 0 или отсутствие параметра — "сейчас"
    return ts if ts > 0 else int(time.time() * 1000)


@app.get("/api/graph")
async def graph(timestamp: int = Query(default=0)):
    return generate_snapshot(_resolve(timestamp))


@app.get("/api/root-cause")
async def root_cause(timestamp: int = Query(default=0)):
    return {"candidates": root_cause_candidates(generate_snapshot(_resolve(timestamp)))}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8081)
