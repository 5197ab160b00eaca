# reporting/telemetry.py
from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from ..plant.events import Event, EventBus
from ..util import ensure_dir_for_file, log, utc_iso

TOPIC = "ads/dam/telemetry"

HISTORY_COLUMNS = [
    "ts",
    "tick",
    "mode",
    "alert_level",
    "target_level",
    "water_level",
    "downstream_level",
    "inflow_rate",
    "outflow_rate",
    "gate_opening",
    "target_gate_opening",
    "gate_status",
    "current_power",
    "total_energy",
    "total_cost",
    "order_delivered_volume",
]


# ============================================================
# Payload
# ============================================================
def build_dam_payload(data: Dict[str, Any], seq: int, ts: Optional[str] = None) -> Dict[str, Any]:
    s = data["state"]
    return {
        "ts": ts or utc_iso(),
        "device_id": "dam",
        "seq": seq,
        "tick": data.get("tick"),
        "mode": data.get("mode"),
        "alert_level": data.get("alert_level"),
        "target_level": data.get("target_level"),
        "state": {
            "timestamp": s["timestamp"],
            "water_level": round(s["water_level"], 4),
            "downstream_level": round(s["downstream_level"], 4),
            "inflow_rate": round(s["inflow_rate"], 3),
            "outflow_rate": round(s["outflow_rate"], 3),
            "gate_opening": round(s["gate_opening"], 2),
            "target_gate_opening": round(s["target_gate_opening"], 2),
            "gate_status": s["gate_status"],
            "is_raining": bool(s["is_raining"]),
            "rainfall_intensity": s["rainfall_intensity"],
            "current_power": s["current_power"],
            "total_energy": round(s["total_energy"], 6),
            "total_cost": round(s["total_cost"], 3),
        },
        "order": data.get("order"),
    }


# ============================================================
# Recorder: listens to bus and appends telemetry as JSONL
# ============================================================
class TelemetryRecorder:
    """
    Subscribes to the EventBus and writes every telemetry event to out_jsonl.
    Write errors are logged; the simulation keeps running.
    """

    def __init__(self, bus: EventBus, out_jsonl: str, every_ticks: int = 1):
        self.bus = bus
        self.out_jsonl = out_jsonl
        self.every_ticks = max(1, int(every_ticks))
        self.written: int = 0

    async def run(self, stop_event: asyncio.Event) -> None:
        ensure_dir_for_file(self.out_jsonl)
        q = await self.bus.subscribe("telemetry")
        seq = 0
        log(f"[REC] writing to {os.path.abspath(self.out_jsonl)}")
        try:
            with open(self.out_jsonl, "a", encoding="utf-8") as f:
                while not stop_event.is_set() or not q.empty():
                    try:
                        ev: Event = await asyncio.wait_for(q.get(), timeout=0.5)
                    except asyncio.TimeoutError:
                        continue

                    if ev.type != "telemetry":
                        continue
                    tick = int(ev.data.get("tick") or 0)
                    if self.every_ticks > 1 and tick % self.every_ticks != 0:
                        continue

                    seq += 1
                    payload = build_dam_payload(ev.data, seq, ts=ev.ts)
                    try:
                        f.write(json.dumps({"topic": TOPIC, "payload": payload}, ensure_ascii=False) + "\n")
                        f.flush()
                        self.written += 1
                    except (OSError, TypeError, ValueError) as e:
                        log(f"[REC] write failed: {e!r}")
        except OSError as e:
            log(f"[REC] cannot open {self.out_jsonl}: {e!r}")
        finally:
            await self.bus.unsubscribe(q)


# ============================================================
# History
# ============================================================
def parse_ts(ts: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(ts)
    except (TypeError, ValueError):
        return None


def tail_lines(path: str, max_lines: int = 4000) -> List[str]:
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        lines = f.readlines()
    return lines[-max_lines:]


def load_history(jsonl_path: str, max_lines: int = 4000) -> pd.DataFrame:
    rows = []
    for line in tail_lines(jsonl_path, max_lines=max_lines):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        payload = obj.get("payload")
        if not isinstance(payload, dict) or payload.get("device_id") != "dam":
            continue

        ts = payload.get("ts")
        dt = parse_ts(ts) if isinstance(ts, str) else None
        if dt is None:
            continue

        s = payload.get("state", {})
        if not isinstance(s, dict):
            continue
        order = payload.get("order") or {}

        rows.append({
            "ts": dt,
            "tick": payload.get("tick"),
            "mode": payload.get("mode"),
            "alert_level": payload.get("alert_level"),
            "target_level": payload.get("target_level"),
            "water_level": s.get("water_level"),
            "downstream_level": s.get("downstream_level"),
            "inflow_rate": s.get("inflow_rate"),
            "outflow_rate": s.get("outflow_rate"),
            "gate_opening": s.get("gate_opening"),
            "target_gate_opening": s.get("target_gate_opening"),
            "gate_status": s.get("gate_status"),
            "current_power": s.get("current_power"),
            "total_energy": s.get("total_energy"),
            "total_cost": s.get("total_cost"),
            "order_delivered_volume": order.get("delivered_volume"),
        })

    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    return pd.DataFrame(rows, columns=HISTORY_COLUMNS).sort_values("ts").reset_index(drop=True)
