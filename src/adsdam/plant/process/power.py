# plant/process/power.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .config import ProcessConfig


def motor_power(cfg: ProcessConfig, moving: bool) -> float:
    return cfg.motor_power_active_kw if moving else cfg.motor_power_standby_kw


def account_energy(cfg: ProcessConfig, moving: bool, total_energy: float, dt_s: float) -> Tuple[float, float, float]:
    """Returns (current_power_kw, total_energy_kwh, total_cost)."""
    power_kw = motor_power(cfg, moving)
    energy = float(total_energy) + power_kw * (dt_s / 3600.0)
    # cost follows the current rate over all energy so far
    cost = energy * cfg.elec_rate_per_kwh
    return power_kw, energy, cost


@dataclass(frozen=True)
class PowerSummary:
    average_load_kw: float
    projected_monthly_kwh: float
    projected_monthly_cost: float
    efficiency_status: str
    optimization_tip: str


def power_summary(cfg: ProcessConfig, total_energy: float, elapsed_s: float) -> PowerSummary:
    hours = elapsed_s / 3600.0
    avg_kw = (total_energy / hours) if hours > 0 else 0.0
    monthly_kwh = avg_kw * 24.0 * 30.0

    # share of time the drive is running, from the two-level motor model
    span = cfg.motor_power_active_kw - cfg.motor_power_standby_kw
    duty = (avg_kw - cfg.motor_power_standby_kw) / span if span > 0 else 0.0

    if duty <= 0.05:
        status = "Optimal"
        tip = "Keep AUTO dead-band; motors mostly idle on standby."
    elif duty <= 0.25:
        status = "Normal"
        tip = "Widen the setpoint dead-band to cut short gate corrections."
    else:
        status = "High Load"
        tip = "Avoid frequent manual jogging; let AUTO hold the gate position."

    return PowerSummary(
        average_load_kw=avg_kw,
        projected_monthly_kwh=monthly_kwh,
        projected_monthly_cost=monthly_kwh * cfg.elec_rate_per_kwh,
        efficiency_status=status,
        optimization_tip=tip,
    )
