"""
Gate controller: AUTO level control, order override, MANUAL hold
"""

import pytest

from adsdam.plant.controller import ControllerConfig, GateController
from adsdam.plant.state import SystemState


@pytest.fixture
def ctl():
    return GateController(ControllerConfig())


def state(level, gate, target=None):
    return SystemState(water_level=level, gate_opening=gate, target_gate_opening=gate if target is None else target)


class TestAutoMode:
    """Asymmetric control around the setpoint"""

    def test_opens_proportionally_above_setpoint(self, ctl):
        # error +1.0 m -> +5 %
        assert ctl.compute(state(6.0, 30.0), "AUTO", 5.0, False) == pytest.approx(35.0)

    def test_closes_by_fixed_step_below_setpoint(self, ctl):
        assert ctl.compute(state(4.5, 30.0), "AUTO", 5.0, False) == pytest.approx(28.0)
        assert ctl.compute(state(1.0, 30.0), "AUTO", 5.0, False) == pytest.approx(28.0)

    def test_holds_inside_deadband(self, ctl):
        for level in (4.85, 5.0, 5.15):
            assert ctl.compute(state(level, 42.0, target=10.0), "AUTO", 5.0, False) == 42.0

    def test_result_is_clamped(self, ctl):
        assert ctl.compute(state(11.0, 90.0), "AUTO", 5.0, False) == 100.0
        assert ctl.compute(state(2.0, 1.0), "AUTO", 5.0, False) == 0.0

    def test_uses_actual_gate_position_not_previous_target(self, ctl):
        assert ctl.compute(state(6.0, 20.0, target=80.0), "AUTO", 5.0, False) == pytest.approx(25.0)


class TestOverrides:
    """Active order and MANUAL mode"""

    @pytest.mark.parametrize("mode", ["AUTO", "MANUAL"])
    def test_active_order_forces_full_open(self, ctl, mode):
        assert ctl.compute(state(2.0, 10.0), mode, 5.0, True) == 100.0

    def test_manual_keeps_previous_target(self, ctl):
        assert ctl.compute(state(9.0, 20.0, target=37.0), "MANUAL", 5.0, False) == 37.0

    def test_custom_gains(self):
        ctl = GateController(ControllerConfig(deadband_m=0.5, open_gain_pct_per_m=10.0, close_step_pct=4.0))
        assert ctl.compute(state(6.0, 30.0), "AUTO", 5.0, False) == pytest.approx(40.0)
        assert ctl.compute(state(5.4, 30.0), "AUTO", 5.0, False) == 30.0
        assert ctl.compute(state(4.0, 30.0), "AUTO", 5.0, False) == pytest.approx(26.0)
