# plant/process/dam_process.py
from __future__ import annotations

import random
from dataclasses import replace

from ..state import SystemState, clamp
from .config import ProcessConfig
from .gate import gate_status, step_gate
from .hydraulics import compute_inflow, compute_outflow, next_downstream_level, next_water_level
from .power import account_energy


class DamProcess:
    """
    Process/Physics.
    - Moves the gate toward the target chosen by the controller.
    - Updates flows, levels and power accounting.
    - No control rules here (that is the controller).
    """

    def __init__(self, cfg: ProcessConfig | None = None, seed: int | None = None, rng: random.Random | None = None):
        self.cfg = cfg or ProcessConfig()
        self._rng = rng or random.Random(seed)

    # ======================================================
    # MAIN STEP (physics only)
    # ======================================================
    def step(self, s: SystemState, target_gate_opening: float, dt_s: float, now: float) -> SystemState:
        cfg = self.cfg
        target = clamp(float(target_gate_opening), 0.0, 100.0)

        # 1) inflow
        inflow = compute_inflow(cfg, s.is_raining, s.rainfall_intensity, self._rng)

        # 2) actuator
        gate, moving = step_gate(s.gate_opening, target, cfg.gate_speed_pct_per_tick)
        status = gate_status(s.gate_opening, gate)

        # 3) power
        power_kw, energy, cost = account_energy(cfg, moving, s.total_energy, dt_s)

        # 4) outflow through the new opening at the previous level
        outflow = compute_outflow(cfg, s.water_level, gate)

        # 5) levels
        level = next_water_level(cfg, s.water_level, inflow, outflow, dt_s)
        downstream = next_downstream_level(cfg, s.downstream_level, outflow)

        return replace(
            s,
            timestamp=now,
            inflow_rate=inflow,
            outflow_rate=outflow,
            water_level=level,
            downstream_level=downstream,
            gate_opening=gate,
            target_gate_opening=target,
            gate_status=status,
            current_power=power_kw,
            total_energy=energy,
            total_cost=cost,
        )
