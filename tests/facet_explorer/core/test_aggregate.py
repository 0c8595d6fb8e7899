import pytest

from facet_explorer.core.aggregate import Aggregate, aggregate_column, compute_filter_data, partition_column
from facet_explorer.core.misval import MISSING
from facet_explorer.core.partition import Partition


def _records():
    return [
        {"name": "Jones", "age": 5.0},
        {"name": "Jones", "age": 9.0},
        {"name": "Smith", "age": 30.0},
        {"name": MISSING, "age": 1.0},
        {"name": "Smith", "age": MISSING},
    ]


def _name_partition():
    return Partition("name", type="categorial", categories=[("Jones", 2), ("Smith", 2)])


def test_column_names():
    assert [partition_column(i) for i in range(3)] == ["a", "b", "c"]
    assert [aggregate_column(i) for i in range(2)] == ["aa", "bb"]


def test_group_by_one_partition():
    rows = compute_filter_data(_records(), [_name_partition()], [Aggregate("age", "avg")])

    assert rows == [
        {"a": "Jones", "count": 2, "aa": 7.0},
        {"a": "Smith", "count": 2, "aa": 30.0},
    ]


def test_several_aggregates():
    aggregates = [Aggregate("age", "sum"), Aggregate("age", "max", rank=2)]
    rows = compute_filter_data(_records(), [_name_partition()], aggregates)

    assert rows[0] == {"a": "Jones", "count": 2, "aa": 14.0, "bb": 9.0}


def test_continuous_partition_uses_bin_values():
    partition = Partition("age", type="continuous", minval=0.0, maxval=40.0, grouping_param=2)
    rows = compute_filter_data(_records(), [partition], [])

    assert rows == [
        {"a": 10.0, "count": 3},
        {"a": 30.0, "count": 1},
    ]


def test_list_values_count_in_every_group():
    records = [{"name": ["Jones", "Smith"]}, {"name": "Jones"}]
    rows = compute_filter_data(records, [_name_partition()], [])

    assert rows == [
        {"a": "Jones", "count": 2},
        {"a": "Smith", "count": 1},
    ]


def test_without_partitions_gives_one_row():
    rows = compute_filter_data(_records(), [], [Aggregate("age", "min")])

    assert rows == [{"count": 5, "aa": 1.0}]


def test_plain_count_without_partitions_or_aggregates():
    rows = compute_filter_data(_records(), [], [])

    assert rows == [{"count": 5}]


def test_no_records_gives_no_rows():
    assert compute_filter_data([], [_name_partition()], [Aggregate("age")]) == []


def test_aggregate_operations():
    aggregate = Aggregate("age")

    assert aggregate.rotate_operation() == "avg"
    assert Aggregate.from_dict(aggregate.to_dict()) == aggregate
    with pytest.raises(ValueError):
        Aggregate("age", "median")
