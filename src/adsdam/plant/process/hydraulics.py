# plant/process/hydraulics.py
from __future__ import annotations

import math
import random

from ..state import clamp
from .config import ProcessConfig


def compute_inflow(cfg: ProcessConfig, is_raining: bool, rainfall_intensity: float, rng: random.Random) -> float:
    rain_effect = float(rainfall_intensity) * cfg.rain_inflow_gain if is_raining else 0.0
    noise = rng.uniform(-cfg.inflow_noise_m3s, cfg.inflow_noise_m3s) if cfg.inflow_noise_m3s > 0 else 0.0
    return max(0.0, cfg.base_inflow_m3s + rain_effect + noise)


def gate_height_m(cfg: ProcessConfig, gate_opening: float) -> float:
    return (clamp(float(gate_opening), 0.0, 100.0) / 100.0) * cfg.max_gate_height_m


def compute_outflow(cfg: ProcessConfig, water_level: float, gate_opening: float) -> float:
    """
    Large rectangular orifice at the bottom of the dam:

        Q = 2/3 * Cd * b * sqrt(2g) * (h2^1.5 - h1^1.5)

    h2 is the depth to the orifice bottom (the water level itself), h1 the depth
    to the orifice top. When the water is below the top of the opening h1 is 0
    and the gate behaves like a weir.
    """
    opening_m = gate_height_m(cfg, gate_opening)
    if water_level <= cfg.min_depth_m or opening_m <= cfg.min_depth_m:
        return 0.0

    h2 = float(water_level)
    h1 = max(0.0, h2 - opening_m)
    k = (2.0 / 3.0) * cfg.discharge_coefficient * cfg.gate_width_m * math.sqrt(2.0 * cfg.gravity)
    return k * (h2 ** 1.5 - h1 ** 1.5)


def next_water_level(cfg: ProcessConfig, water_level: float, inflow: float, outflow: float, dt_s: float) -> float:
    dh = ((inflow - outflow) / cfg.reservoir_area_m2) * dt_s
    return clamp(float(water_level) + dh, 0.0, cfg.max_water_level_m)


def next_downstream_level(cfg: ProcessConfig, downstream_level: float, outflow: float) -> float:
    target = cfg.downstream_base_m + outflow * cfg.downstream_gain_m_per_m3s
    return float(downstream_level) + (target - float(downstream_level)) * cfg.downstream_smoothing
