# plant/simulation.py
from __future__ import annotations

import math
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from .controller import ControllerConfig, GateController
from .orders import OrderTracker
from .process.config import ProcessConfig
from .process.dam_process import DamProcess
from .state import (
    MODES,
    AlertLevel,
    Mode,
    SimulationConfig,
    SystemState,
    WateringOrder,
    alert_level,
    clamp,
)
from ..util import log


class DamSimulator:
    """
    Owner of the dam state. Everything that changes the state goes through
    the methods below, and every change replaces the snapshot as a whole.
    Readers always get the latest values through the properties.
    """

    def __init__(
        self,
        state: SystemState | None = None,
        config: SimulationConfig | None = None,
        mode: Mode = "AUTO",
        controller: GateController | None = None,
        process: DamProcess | None = None,
        orders: OrderTracker | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        self._config = (config or SimulationConfig()).validated()
        self._mode: Mode = self._check_mode(mode)
        self._state = state or SystemState(timestamp=clock())

        self.controller = controller or GateController(ControllerConfig())
        self.process = process or DamProcess(ProcessConfig())
        self.orders = orders or OrderTracker()

        self.tick_n: int = 0

    # ======================================================
    # Read accessors
    # ======================================================
    @property
    def state(self) -> SystemState:
        return self._state

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def active_order(self) -> Optional[WateringOrder]:
        return self.orders.active

    @property
    def last_completed_order(self) -> Optional[WateringOrder]:
        return self.orders.last_completed

    def alert_level(self) -> AlertLevel:
        return alert_level(self._state.water_level)

    # ======================================================
    # TICK
    # ======================================================
    def tick(self) -> SystemState:
        now = self._clock()
        dt_s = self._config.dt_s

        # an order that finished on the previous tick must not hold the gate open
        self._check_order_completion(now)

        # 1) Controller decides the gate target
        target = self.controller.compute(
            self._state,
            self._mode,
            self._config.target_level,
            has_active_order=self.orders.has_active,
        )

        # 2) Physics moves the gate and updates flows, levels and energy
        self._state = self.process.step(self._state, target, dt_s, now)

        # 3) Order progress
        self.orders.accumulate(self._state.outflow_rate, self._state.current_power, dt_s)
        self._check_order_completion(now)

        self.tick_n += 1
        return self._state

    def _check_order_completion(self, now: float) -> None:
        done = self.orders.check_completion(now)
        if done is not None:
            log(
                f"[ORDER] completed {done.id} client={done.client_name} "
                f"delivered={done.delivered_volume:.1f}m3 power={done.power_consumed:.4f}kWh"
            )

    # ======================================================
    # Operator commands
    # ======================================================
    def set_mode(self, mode: Mode) -> None:
        self._mode = self._check_mode(mode)

    def set_target_level(self, level: float) -> None:
        self._config = replace(self._config, target_level=float(level)).validated()

    def set_simulation_speed(self, ms: float) -> None:
        self._config = replace(self._config, simulation_speed=float(ms)).validated()

    def set_rain(self, is_raining: bool, intensity: float = 0.0) -> None:
        if not math.isfinite(intensity) or intensity < 0:
            raise ValueError(f"rainfall intensity must be a non-negative number, got {intensity!r}")
        self._state = replace(self._state, is_raining=bool(is_raining), rainfall_intensity=float(intensity))

    def set_elec_rate(self, rate: float) -> None:
        if not math.isfinite(rate) or rate < 0:
            raise ValueError(f"electricity rate must be a non-negative number, got {rate!r}")
        self.process.cfg.elec_rate_per_kwh = float(rate)

    def jog(self, delta: float) -> bool:
        """Nudge the gate target in MANUAL mode. Returns False when ignored."""
        if self._mode != "MANUAL":
            return False
        target = clamp(self._state.target_gate_opening + float(delta), 0.0, 100.0)
        self._state = replace(self._state, target_gate_opening=target)
        return True

    def start_order(self, client_name: str, hectares: float) -> WateringOrder:
        order = self.orders.start(client_name, hectares, self._clock())
        log(f"[ORDER] started {order.id} client={order.client_name} ha={order.hectares:g} target={order.target_volume:.0f}m3")
        return order

    def cancel_order(self) -> Optional[WateringOrder]:
        order = self.orders.cancel(self._clock())
        if order is not None:
            log(f"[ORDER] cancelled {order.id} delivered={order.delivered_volume:.1f}m3")
        return order

    @staticmethod
    def _check_mode(mode: str) -> Mode:
        m = str(mode).upper()
        if m not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        return m  # type: ignore[return-value]

    # ======================================================
    # Snapshot / restore
    # ======================================================
    def snapshot(self) -> Dict[str, Any]:
        active = self.orders.active
        last = self.orders.last_completed
        return {
            "state": self._state.to_dict(),
            "mode": self._mode,
            "config": {
                "target_level": self._config.target_level,
                "simulation_speed": self._config.simulation_speed,
                "elec_rate_per_kwh": self.process.cfg.elec_rate_per_kwh,
            },
            "active_order": active.to_dict() if active else None,
            "last_completed_order": last.to_dict() if last else None,
        }

    @classmethod
    def from_snapshot(
        cls,
        data: Dict[str, Any],
        process: DamProcess | None = None,
        controller: GateController | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "DamSimulator":
        config = dict(data.get("config", {}))
        elec_rate = config.pop("elec_rate_per_kwh", None)

        sim = cls(
            state=SystemState.from_dict(data["state"]),
            config=SimulationConfig(**config),
            mode=data.get("mode", "AUTO"),
            controller=controller,
            process=process,
            clock=clock,
        )
        if elec_rate is not None:
            sim.set_elec_rate(float(elec_rate))

        # bounded quantities stay bounded whatever the stored values
        s = sim._state
        sim._state = replace(
            s,
            water_level=clamp(s.water_level, 0.0, sim.process.cfg.max_water_level_m),
            gate_opening=clamp(s.gate_opening, 0.0, 100.0),
            target_gate_opening=clamp(s.target_gate_opening, 0.0, 100.0),
        )

        if data.get("active_order"):
            sim.orders.active = WateringOrder.from_dict(data["active_order"])
        if data.get("last_completed_order"):
            sim.orders.last_completed = WateringOrder.from_dict(data["last_completed_order"])
        return sim
