import matplotlib

matplotlib.use("Agg")

import pytest

from eadvfs.schedulers.speed_controller import SpeedController, SpeedLevel, SpeedTable


@pytest.fixture
def unit_controller():
    """Single 1.0x level so wall time equals CPU work"""
    table = SpeedTable([SpeedLevel(speed=1.0, power_w=1.0, label="base")], idle_power=0.2)
    return SpeedController(table)
