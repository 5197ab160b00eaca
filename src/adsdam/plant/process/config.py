# plant/process/config.py
from __future__ import annotations

from dataclasses import dataclass

from ..state import MAX_WATER_LEVEL


@dataclass
class ProcessConfig:
    # =========================
    # Inflow
    # =========================
    base_inflow_m3s: float = 36.0
    rain_inflow_gain: float = 0.3   # m3/s per mm/h of rainfall
    inflow_noise_m3s: float = 1.0   # uniform noise in [-x, x]

    # =========================
    # Reservoir
    # =========================
    reservoir_area_m2: float = 1000.0
    max_water_level_m: float = MAX_WATER_LEVEL

    # =========================
    # Gate (sluice, orifice at the bottom)
    # =========================
    gate_speed_pct_per_tick: float = 2.0
    max_gate_height_m: float = 2.0
    gate_width_m: float = 3.0
    discharge_coefficient: float = 0.6
    gravity: float = 9.81
    min_depth_m: float = 0.01       # below this no outflow is computed

    # =========================
    # Downstream channel
    # =========================
    downstream_base_m: float = 0.5
    downstream_gain_m_per_m3s: float = 0.04
    downstream_smoothing: float = 0.1  # per tick

    # =========================
    # Motors (2x 5 kW drive)
    # =========================
    motor_power_active_kw: float = 10.0
    motor_power_standby_kw: float = 0.2
    elec_rate_per_kwh: float = 1000.0  # UZS
