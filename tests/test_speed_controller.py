import pytest

from eadvfs.schedulers.speed_controller import SpeedController, SpeedDecision, SpeedLevel, SpeedTable
from eadvfs.task_generator import Task


def _ready(*remaining):
    return [Task(i + 1, 0, r) for i, r in enumerate(remaining)]


def test_all_short_jobs_select_highest_level() -> None:
    controller = SpeedController()
    index, decision = controller.decide(_ready(10, 15, 20))
    assert index == len(controller.speed_table) - 1
    assert decision is SpeedDecision.BURST
    assert controller.select_level(_ready(10, 15, 20)).label == "2.0GHz"


def test_high_predicted_utilisation_selects_highest_level() -> None:
    # 150 / 200 = 0.75 > 0.6
    index, decision = SpeedController().decide(_ready(150))
    assert index == 2
    assert decision is SpeedDecision.BURST


def test_long_jobs_select_lowest_level() -> None:
    controller = SpeedController(config={'lookahead_window': 10000.0})
    index, decision = controller.decide(_ready(500, 400))
    assert index == 0
    assert decision is SpeedDecision.LONG_JOBS


def test_default_branch_uses_mid_level() -> None:
    index, decision = SpeedController().decide(_ready(100))
    assert index == 1
    assert decision is SpeedDecision.BALANCED


def test_short_fraction_at_threshold_is_not_a_burst() -> None:
    # 3 of 5 short (remaining 30 counts as short) gives exactly 0.6
    controller = SpeedController(config={'lookahead_window': 1000.0})
    shape = controller.workload_shape(_ready(30, 10, 10, 60, 60))
    assert shape[0] == pytest.approx(0.6)
    assert controller.decide(_ready(30, 10, 10, 60, 60))[1] is SpeedDecision.BALANCED


def test_empty_ready_set_has_no_decision() -> None:
    controller = SpeedController()
    assert controller.decide([]) is None
    assert controller.select_level([]) is None


def test_fixed_level_by_label_pins_every_decision() -> None:
    controller = SpeedController(fixed_level="1.0GHz")
    assert controller.decide(_ready(10, 15, 20)) == (0, SpeedDecision.FIXED)
    assert controller.policy_name == "fixed-1.0GHz"
    assert SpeedController().policy_name == "EADVFS"


def test_unknown_fixed_label_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown speed level"):
        SpeedController(fixed_level="9GHz")


def test_mid_level_defaults_for_small_tables() -> None:
    one = SpeedTable([SpeedLevel(1.0, 1.0, "a")])
    two = SpeedTable([SpeedLevel(1.0, 1.0, "a"), SpeedLevel(2.0, 3.0, "b")])
    assert SpeedController(one).mid_index == 0
    assert SpeedController(two).mid_index == 1
    assert SpeedController(one).decide(_ready(100)) == (0, SpeedDecision.BALANCED)


def test_explicit_mid_index_outside_table_is_rejected() -> None:
    with pytest.raises(ValueError, match="mid_index"):
        SpeedController(config={'mid_index': 5})


def test_speed_table_must_be_non_empty_and_ascending() -> None:
    with pytest.raises(ValueError):
        SpeedTable([])
    with pytest.raises(ValueError, match="strictly ascending"):
        SpeedTable([SpeedLevel(2.0, 3.0, "fast"), SpeedLevel(1.0, 1.0, "slow")])
    with pytest.raises(ValueError):
        SpeedLevel(speed=0.0, power_w=1.0, label="stalled")


def test_speed_table_accepts_config_dicts() -> None:
    table = SpeedTable([{'speed': 1.0, 'power': 1.5, 'label': 'lo'}, {'speed': 2.0, 'power': 4.0, 'label': 'hi'}],
                       idle_power=0.1)
    assert table[1] == SpeedLevel(2.0, 4.0, 'hi')
    assert table.index_of('lo') == 0
    assert table.idle_power == pytest.approx(0.1)
