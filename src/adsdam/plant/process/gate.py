# plant/process/gate.py
from __future__ import annotations

from typing import Tuple

from ..state import GateStatus, clamp


def step_gate(position: float, target: float, speed: float) -> Tuple[float, bool]:
    """Move the actuator one tick toward target. Returns (new_position, moving)."""
    position = clamp(float(position), 0.0, 100.0)
    target = clamp(float(target), 0.0, 100.0)

    if abs(target - position) < speed:
        return target, False
    if position < target:
        return clamp(position + speed, 0.0, 100.0), True
    return clamp(position - speed, 0.0, 100.0), True


def gate_status(prev_position: float, new_position: float) -> GateStatus:
    if new_position > prev_position:
        return "OPENING"
    if new_position < prev_position:
        return "CLOSING"
    if new_position == 0:
        return "CLOSED"
    if new_position == 100:
        return "OPEN"
    return "PARTIALLY_OPEN"
