# plant/orders.py
from __future__ import annotations

import math
from dataclasses import replace
from typing import Optional

from .state import WATER_COST_PER_M3, WATER_PER_HECTARE_M3, WateringOrder


class OrderError(ValueError):
    pass


class OrderAlreadyActiveError(OrderError):
    def __init__(self, active: WateringOrder):
        super().__init__(f"order {active.id} for {active.client_name} is still active")
        self.active = active


class OrderTracker:
    """
    Watering orders: at most one ACTIVE order, plus the last COMPLETED one kept
    for reporting. Per-tick accumulation and completion are separate calls.
    """

    def __init__(
        self,
        water_per_hectare_m3: float = WATER_PER_HECTARE_M3,
        water_cost_per_m3: float = WATER_COST_PER_M3,
    ):
        self.water_per_hectare_m3 = water_per_hectare_m3
        self.water_cost_per_m3 = water_cost_per_m3

        self.active: Optional[WateringOrder] = None
        self.last_completed: Optional[WateringOrder] = None

    @property
    def has_active(self) -> bool:
        return self.active is not None

    # ======================================================
    # Lifecycle
    # ======================================================
    def start(self, client_name: str, hectares: float, now: float) -> WateringOrder:
        if self.active is not None:
            raise OrderAlreadyActiveError(self.active)

        name = (client_name or "").strip()
        if not name:
            raise OrderError("client name is required")
        try:
            ha = float(hectares)
        except (TypeError, ValueError):
            raise OrderError(f"hectares must be a number, got {hectares!r}") from None
        if not math.isfinite(ha) or ha <= 0:
            raise OrderError(f"hectares must be positive, got {hectares!r}")

        self.active = WateringOrder(
            id=str(int(now * 1000)),
            client_name=name,
            hectares=ha,
            target_volume=ha * self.water_per_hectare_m3,
            start_time=now,
        )
        return self.active

    def cancel(self, now: float) -> Optional[WateringOrder]:
        order = self.active
        if order is None:
            return None
        self.active = None
        return replace(order, status="CANCELLED", end_time=now)

    # ======================================================
    # Per tick
    # ======================================================
    def accumulate(self, outflow_m3s: float, power_kw: float, dt_s: float) -> None:
        order = self.active
        if order is None:
            return

        delivered = order.delivered_volume + max(0.0, float(outflow_m3s)) * dt_s
        self.active = replace(
            order,
            delivered_volume=delivered,
            power_consumed=order.power_consumed + float(power_kw) * (dt_s / 3600.0),
            water_cost=delivered * self.water_cost_per_m3,
        )

    def check_completion(self, now: float) -> Optional[WateringOrder]:
        order = self.active
        if order is None or order.delivered_volume < order.target_volume:
            return None

        done = replace(order, status="COMPLETED", end_time=now)
        self.last_completed = done
        self.active = None
        return done


def estimated_water_cost(
    hectares: float,
    water_per_hectare_m3: float = WATER_PER_HECTARE_M3,
    water_cost_per_m3: float = WATER_COST_PER_M3,
) -> float:
    """Price of the full order volume, shown before an order is started."""
    return max(0.0, float(hectares)) * water_per_hectare_m3 * water_cost_per_m3
