from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Literal, Optional


Mode = Literal["AUTO", "MANUAL"]
GateStatus = Literal["OPEN", "CLOSED", "OPENING", "CLOSING", "PARTIALLY_OPEN"]
OrderStatus = Literal["ACTIVE", "COMPLETED", "CANCELLED"]
AlertLevel = Literal["NORMAL", "WARNING", "CRITICAL"]

MODES = ("AUTO", "MANUAL")

# reservoir limits (m)
MAX_WATER_LEVEL = 12.0
WARNING_THRESHOLD = 8.0
CRITICAL_THRESHOLD = 9.5

# setpoint range of the radar control level (m)
TARGET_LEVEL_MIN = 0.0
TARGET_LEVEL_MAX = 10.0

# watering orders
WATER_PER_HECTARE_M3 = 1000.0
WATER_COST_PER_M3 = 100.0  # UZS


# default clamp function
def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def alert_level(water_level: float) -> AlertLevel:
    if water_level >= CRITICAL_THRESHOLD:
        return "CRITICAL"
    if water_level >= WARNING_THRESHOLD:
        return "WARNING"
    return "NORMAL"


@dataclass(frozen=True)
class SimulationConfig:
    target_level: float = 5.0       # m, operator setpoint
    simulation_speed: float = 200.0  # ms per tick, also the physics timestep

    @property
    def dt_s(self) -> float:
        return self.simulation_speed / 1000.0

    def validated(self) -> "SimulationConfig":
        if not math.isfinite(self.target_level):
            raise ValueError(f"target_level must be finite, got {self.target_level!r}")
        if not math.isfinite(self.simulation_speed) or self.simulation_speed <= 0:
            raise ValueError(f"simulation_speed must be a positive number of ms, got {self.simulation_speed!r}")
        return SimulationConfig(
            target_level=clamp(float(self.target_level), TARGET_LEVEL_MIN, TARGET_LEVEL_MAX),
            simulation_speed=float(self.simulation_speed),
        )


@dataclass(frozen=True)
class SystemState:
    """
    One tick of dam telemetry. Never mutated: every tick builds a new one.
    """

    timestamp: float = 0.0

    # Hydraulics
    water_level: float = 5.0        # m, upstream
    downstream_level: float = 0.8   # m
    inflow_rate: float = 36.0       # m3/s
    outflow_rate: float = 0.0       # m3/s

    # Gate
    gate_opening: float = 0.0          # % of max travel, actual
    target_gate_opening: float = 0.0   # % of max travel, desired
    gate_status: GateStatus = "CLOSED"

    # Environment
    is_raining: bool = False
    rainfall_intensity: float = 0.0  # mm/h

    # Electrical
    current_power: float = 0.2  # kW
    total_energy: float = 0.0   # kWh
    total_cost: float = 0.0     # UZS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class WateringOrder:
    id: str
    client_name: str
    hectares: float
    target_volume: float           # m3
    start_time: float
    delivered_volume: float = 0.0  # m3
    end_time: Optional[float] = None
    status: OrderStatus = "ACTIVE"
    power_consumed: float = 0.0    # kWh during this order
    water_cost: float = 0.0        # UZS

    @property
    def progress_pct(self) -> float:
        if self.target_volume <= 0:
            return 100.0
        return clamp(100.0 * self.delivered_volume / self.target_volume, 0.0, 100.0)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WateringOrder":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
