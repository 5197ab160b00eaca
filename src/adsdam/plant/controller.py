# plant/controller.py
from __future__ import annotations

from dataclasses import dataclass

from .state import Mode, SystemState, clamp


@dataclass
class ControllerConfig:
    # =========================
    # AUTO (radar level control)
    # =========================
    deadband_m: float = 0.2
    open_gain_pct_per_m: float = 5.0   # level above setpoint -> open proportionally
    close_step_pct: float = 2.0        # level below setpoint -> close at a fixed rate

    # =========================
    # Watering order
    # =========================
    order_gate_opening_pct: float = 100.0


class GateController:
    """
    Controller (first match wins):
    - active watering order -> gate fully open
    - AUTO -> asymmetric level control around the setpoint
    - MANUAL -> keep the target set by jog commands
    Writes only the gate target (no physics).
    """

    def __init__(self, cfg: ControllerConfig | None = None):
        self.cfg = cfg or ControllerConfig()

    # ======================================================
    # MAIN ENTRY
    # ======================================================
    def compute(self, s: SystemState, mode: Mode, target_level: float, has_active_order: bool) -> float:
        if has_active_order:
            target = self.cfg.order_gate_opening_pct
        elif mode == "AUTO":
            target = self._auto_target(s, target_level)
        else:
            target = s.target_gate_opening

        return clamp(float(target), 0.0, 100.0)

    # ======================================================
    # AUTO
    # ======================================================
    def _auto_target(self, s: SystemState, target_level: float) -> float:
        cfg = self.cfg
        error = float(s.water_level) - float(target_level)

        # rising water: open proportionally; falling: close slowly to avoid overshoot
        if error > cfg.deadband_m:
            return min(100.0, s.gate_opening + error * cfg.open_gain_pct_per_m)
        if error < -cfg.deadband_m:
            return max(0.0, s.gate_opening - cfg.close_step_pct)
        return s.gate_opening
