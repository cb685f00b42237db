#!/usr/bin/env python3
# scripts/generate_mock_graph.py
# Генератор фейковых снапшотов причинного графа (формат GET /api/graph)
#
# Топология фиксирована, каждые 10 минут повторяется инцидент:
# payments-db деградирует, затем падает, отказ поднимается вверх по цепочке.
#
# Использование:
#   python scripts/generate_mock_graph.py --timestamp 1770717600000 --output data/snapshot.json

import argparse
import json
import os
import random
import time

# ---------------------------------------------------------------------------
# Сервисы: (id, service_name)
# ---------------------------------------------------------------------------
SERVICES = [
    ("web-frontend",     "web-frontend"),
    ("mobile-bff",       "mobile-bff"),
    ("api-gateway",      "api-gateway"),
    ("order-svc",        "order-svc"),
    ("user-svc",         "user-svc"),
    ("payment-svc",      "payment-svc"),
    ("inventory-svc",    "inventory-svc"),
    ("notification-svc", "notification-svc"),
    ("payments-db",      "payments-db"),
    ("orders-db",        "orders-db"),
    ("session-redis",    "session-redis"),
]

# ---------------------------------------------------------------------------
# Зависимости: (caller, callee, базовая причинная уверенность)
# Ребро caller → callee: отказ callee объясняет отказ caller.
# ---------------------------------------------------------------------------
DEPENDENCIES = [
    ("web-frontend",  "api-gateway",      0.20),
    ("mobile-bff",    "api-gateway",      0.20),
    ("api-gateway",   "order-svc",        0.15),
    ("api-gateway",   "user-svc",         0.10),
    ("order-svc",     "payment-svc",      0.15),
    ("order-svc",     "inventory-svc",    0.10),
    ("order-svc",     "orders-db",        0.05),
    ("payment-svc",   "payments-db",      0.10),
    ("payment-svc",   "notification-svc", 0.05),
    ("user-svc",      "session-redis",    0.05),
]

# Цепочка распространения инцидента (от корня вверх)
INCIDENT_CHAIN = ["payments-db", "payment-svc", "order-svc", "api-gateway"]

CYCLE_MS = 10 * 60 * 1000
INCIDENT_START_MS = 5 * 60 * 1000     # инцидент занимает 5-ю..8-ю минуты цикла
INCIDENT_END_MS = 8 * 60 * 1000
SAMPLE_MS = 1000                      # бэкенд хранит посекундные сэмплы


def snap_timestamp(ts: int) -> int:
    """Округляет вниз до ближайшего доступного сэмпла."""
    return ts - ts % SAMPLE_MS


def _incident_depth(ts: int) -> int:
    """Сколько звеньев цепочки задето в момент ts (0 — инцидента нет)."""
    phase = ts % CYCLE_MS
    if not INCIDENT_START_MS <= phase < INCIDENT_END_MS:
        return 0
    elapsed = phase - INCIDENT_START_MS
    step = (INCIDENT_END_MS - INCIDENT_START_MS) // (len(INCIDENT_CHAIN) + 1)
    return min(len(INCIDENT_CHAIN), 1 + elapsed // step)


def generate_snapshot(ts: int) -> dict:
    """Снапшот на момент ts (детерминирован для одной и той же секунды)."""
    ts = snap_timestamp(ts)
    rng = random.Random(ts // SAMPLE_MS)
    depth = _incident_depth(ts)
    affected = INCIDENT_CHAIN[:depth]

    nodes = []
    for node_id, name in SERVICES:
        if node_id in affected:
            pos = affected.index(node_id)
            # корень падает первым, остальные деградируют
            health = 2 if pos == 0 and depth >= 2 else 1
            downstream = depth - 1 - pos
            amplification = round(1.0 + downstream * 0.8 + rng.uniform(0.0, 0.3), 2)
        else:
            health, downstream, amplification = 0, 0, 0.0
        nodes.append({
            "id": node_id,
            "service_name": name,
            "health_status": health,
            "amplification_score": amplification,
            "downstream_failures": max(downstream, 0),
        })

    edges = []
    for caller, callee, base in DEPENDENCIES:
        on_chain = caller in affected and callee in affected
        confidence = 0.85 + rng.uniform(0.0, 0.1) if on_chain else base + rng.uniform(0.0, 0.05)
        edges.append({
            "source": caller,
            "target": callee,
            "causal_confidence": round(min(confidence, 1.0), 3),
            "is_active": on_chain,
        })

    return {"timestamp": ts, "nodes": nodes, "edges": edges}


def root_cause_candidates(snapshot: dict) -> list[dict]:
    """Нездоровые узлы, чей отказ плохо объясняется их зависимостями."""
    explained: dict[str, float] = {}
    for e in snapshot["edges"]:
        explained[e["source"]] = max(explained.get(e["source"], 0.0), e["causal_confidence"])
    candidates = [
        n for n in snapshot["nodes"]
        if n["health_status"] != 0 and explained.get(n["id"], 0.0) < 0.5
    ]
    candidates.sort(key=lambda n: -n["health_status"])
    return candidates


def main():
    ap = argparse.ArgumentParser(description="Generate a mock causal graph snapshot")
    ap.add_argument("--timestamp", type=int, default=None, help="ms since epoch (default: now)")
    ap.add_argument("--output", default=None, help="write JSON here instead of stdout")
    args = ap.parse_args()

    ts = args.timestamp if args.timestamp is not None else int(time.time() * 1000)
    payload = json.dumps(generate_snapshot(ts), indent=2)
    if args.output:
        os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(payload)
        print(f"Wrote snapshot at {ts} → {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
