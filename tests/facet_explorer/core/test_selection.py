import pandas as pd

from facet_explorer.core.misval import MISSING
from facet_explorer.core.partition import Partition


def _make_categorial():
    return Partition("c", type="categorial", categories=[("A", 1), ("B", 1), ("C", 1)])


def _group(partition, value):
    return next(g for g in partition.groups if g.value == value)


def test_categorial_pick_then_invert():
    partition = _make_categorial()

    partition.update_selection(_group(partition, "A"))
    assert partition.selected == ["A"]

    partition.update_selection(_group(partition, "A"))
    assert partition.selected == ["B", "C"]


def test_categorial_selecting_everything_clears():
    partition = _make_categorial()

    partition.update_selection(_group(partition, "A"))
    partition.update_selection(_group(partition, "B"))
    assert partition.selected == ["A", "B"]

    partition.update_selection(_group(partition, "C"))
    assert partition.selected == []


def test_categorial_removes_from_a_larger_selection():
    partition = _make_categorial()
    partition.selected = ["A", "B"]

    partition.update_selection(_group(partition, "B"))
    assert partition.selected == ["A"]


def test_continuous_extends_to_the_right_and_left():
    partition = Partition("x", type="continuous", minval=0.0, maxval=30.0)

    partition.update_selection({"min": 0, "max": 10})
    assert partition.selected == [0, 10]

    partition.update_selection({"min": 20, "max": 30})
    assert partition.selected == [0, 30]

    partition.selected = [20, 30]
    partition.update_selection({"min": 0, "max": 10})
    assert partition.selected == [0, 30]


def test_continuous_click_inside_moves_the_closer_endpoint():
    partition = Partition("x", type="continuous", minval=0.0, maxval=40.0)
    partition.selected = [0, 40]

    partition.update_selection({"min": 10, "max": 20})
    assert partition.selected == [10, 40]


def test_continuous_tie_moves_the_upper_endpoint():
    partition = Partition("x", type="continuous", minval=0.0, maxval=40.0)
    partition.selected = [0, 40]

    partition.update_selection({"min": 10, "max": 30})
    assert partition.selected == [0, 30]


def test_log_partitions_compare_in_log_space():
    partition = Partition("x", type="continuous", minval=1.0, maxval=1000.0, grouping_continuous="log")
    partition.selected = [1, 1000]

    partition.update_selection({"min": 100, "max": 300})
    assert partition.selected == [1, 300]


def test_datetime_ranges_use_instant_differences():
    day = pd.Timedelta(days=1)
    t0 = pd.Timestamp("2024-01-01", tz="UTC")
    partition = Partition("t", type="datetime", minval=t0, maxval=t0 + 10 * day)
    partition.selected = [t0, t0 + 10 * day]

    partition.update_selection({"min": t0 + 7 * day, "max": t0 + 8 * day})
    assert partition.selected == [t0, t0 + 8 * day]


def test_filter_function_is_closed_at_the_domain_edge():
    partition = Partition("x", type="continuous", minval=0.0, maxval=100.0, grouping_param=10)
    partition.selected = [0.0, 100.0]
    accept = partition.filter_function()

    assert accept(0.0)
    assert accept(50.0)
    assert accept(100.0)
    assert not accept(100.0001)
    assert not accept(MISSING)


def test_filter_function_is_half_open_inside_the_domain():
    partition = Partition("x", type="continuous", minval=0.0, maxval=100.0, grouping_param=10)
    partition.selected = [0.0, 50.0]
    accept = partition.filter_function()

    assert accept(49.9)
    assert not accept(50.0)


def test_categorial_filter_function_with_lists():
    partition = _make_categorial()
    partition.selected = ["A"]
    accept = partition.filter_function()

    assert accept("A")
    assert accept(["B", "A"])
    assert not accept(["C"])
    assert not accept(MISSING)


def test_empty_selection_accepts_everything():
    partition = _make_categorial()
    accept = partition.filter_function()

    assert accept("Z")
    assert accept(MISSING)


def test_unknown_type_is_a_no_op_and_accepts_all():
    partition = Partition("x", type="weird")
    partition.update_selection({"value": "a"})

    assert partition.selected == []
    assert partition.filter_function()("anything")


def test_reset_selection():
    partition = _make_categorial()
    partition.selected = ["A"]
    partition.reset_selection()

    assert partition.selected == []
