import matplotlib

matplotlib.use("Agg")

import pytest

from adsdam.plant.process.config import ProcessConfig
from adsdam.plant.process.dam_process import DamProcess
from adsdam.plant.simulation import DamSimulator
from adsdam.plant.state import SimulationConfig, SystemState


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


@pytest.fixture
def quiet_cfg():
    """Process config without inflow noise, for exact trajectories."""
    return ProcessConfig(inflow_noise_m3s=0.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_sim(clock):
    def _make(state=None, mode="AUTO", target_level=5.0, simulation_speed=200.0, noise=0.0, seed=7):
        return DamSimulator(
            state=state or SystemState(timestamp=clock()),
            config=SimulationConfig(target_level=target_level, simulation_speed=simulation_speed),
            mode=mode,
            process=DamProcess(ProcessConfig(inflow_noise_m3s=noise), seed=seed),
            clock=clock,
        )

    return _make
