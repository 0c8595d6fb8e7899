import pandas as pd
import pytest

from facet_explorer.core.facet import Facet, FacetCollection
from facet_explorer.core.misval import MISSING
from facet_explorer.core.partition import MAX_DATETIME_GROUPS, Partition, PartitionCollection
from facet_explorer.core.time_util import datetime_resolution


def _continuous(minval, maxval, param=4, grouping="fixedn"):
    return Partition(
        "x",
        type="continuous",
        minval=minval,
        maxval=maxval,
        grouping_param=param,
        grouping_continuous=grouping,
    )


def _datetime(minval, maxval, unit="days", zone="UTC"):
    return Partition(
        "t",
        type="datetime",
        minval=pd.Timestamp(minval, tz="UTC"),
        maxval=pd.Timestamp(maxval, tz="UTC"),
        grouping_datetime=unit,
        zone=zone,
    )


@pytest.mark.parametrize("n", [1, 3, 7, 20])
def test_fixedn_bins_are_contiguous_and_span_the_range(n):
    groups = _continuous(-2.5, 17.3, param=n).groups

    assert len(groups) == n
    assert groups[0].min == -2.5
    assert groups[-1].max == pytest.approx(17.3)
    for left, right in zip(groups, groups[1:]):
        assert left.max == pytest.approx(right.min)


def test_fixedn_values_are_midpoints():
    groups = _continuous(0.0, 10.0, param=4).groups

    assert [g.value for g in groups] == [1.25, 3.75, 6.25, 8.75]
    assert groups[0].label == "1.2500"


def test_fixedn_degenerate_range_gives_one_bin():
    groups = _continuous(5.0, 5.0, param=10).groups

    assert len(groups) == 1
    assert groups[0].min == groups[0].max == groups[0].value == 5.0


def test_fixeds_snaps_edges_to_multiples():
    groups = _continuous(3.0, 17.0, param=5, grouping="fixeds").groups

    assert [(g.min, g.max) for g in groups] == [(0.0, 5.0), (5.0, 10.0), (10.0, 15.0), (15.0, 20.0)]


def test_fixedsc_centers_a_bin_on_zero():
    groups = _continuous(-3.0, 12.0, param=10, grouping="fixedsc").groups

    assert [g.value for g in groups] == [-10.0, 0.0, 10.0, 20.0]


def test_log_bins():
    groups = _continuous(1.0, 1000.0, param=3, grouping="log").groups

    assert [g.value for g in groups] == pytest.approx([1.0, 10.0, 100.0])
    assert [g.label for g in groups] == ["10.000", "100.00", "1000.0"]


def test_log_bins_need_a_positive_range():
    assert _continuous(0.0, 10.0, param=3, grouping="log").groups == []


def test_bad_parameters_give_no_groups():
    assert _continuous(0.0, 10.0, grouping="quantiles").groups == []
    assert _continuous(0.0, 10.0, param=0).groups == []
    assert _continuous(10.0, 0.0).groups == []
    assert _continuous(None, 10.0).groups == []
    assert Partition("x", type="weird").groups == []


def test_groups_are_rebuilt_when_inputs_change():
    partition = _continuous(0.0, 10.0, param=4)
    assert len(partition.groups) == 4

    partition.grouping_param = 2
    assert len(partition.groups) == 2

    partition.maxval = 20.0
    assert partition.groups[-1].max == 20.0


def test_datetime_walk_is_capped():
    groups = _datetime("2000-01-01", "2020-01-01", unit="days").groups

    assert len(groups) == MAX_DATETIME_GROUPS


def test_datetime_bins_are_contiguous_and_clamped():
    minval = pd.Timestamp("2024-01-01T10:30:00", tz="UTC")
    groups = _datetime("2024-01-01T10:30:00", "2024-01-04T05:00:00", unit="days").groups

    assert len(groups) == 4
    assert groups[0].min == minval
    assert groups[0].label == "2024-01-01T00:00:00+00:00"
    for left, right in zip(groups, groups[1:]):
        assert left.max == right.min


def test_datetime_bins_follow_the_partition_zone():
    groups = _datetime("2024-01-01T12:00:00", "2024-01-03T12:00:00", unit="days", zone="Europe/Amsterdam").groups

    assert groups[1].min == pd.Timestamp("2024-01-02", tz="Europe/Amsterdam")


def test_datetime_days_realign_after_a_midnight_dst_change():
    # Sao Paulo skipped 2018-11-04 00:00, the day starts at 01:00
    groups = _datetime("2018-11-02T03:00:00", "2018-11-06T02:00:00", unit="days", zone="America/Sao_Paulo").groups

    starts = [g.min for g in groups]
    assert starts[2] == pd.Timestamp("2018-11-04T01:00:00-02:00")
    assert starts[3] == pd.Timestamp("2018-11-05T00:00:00-02:00")
    assert starts[4] == pd.Timestamp("2018-11-06T00:00:00-02:00")
    for left, right in zip(groups, groups[1:]):
        assert left.max == right.min


def test_datetime_weeks_start_on_monday():
    # 2024-01-03 is a Wednesday
    groups = _datetime("2024-01-03", "2024-01-20", unit="weeks").groups

    assert groups[1].min == pd.Timestamp("2024-01-08", tz="UTC")


def test_datetime_degenerate_range_gives_one_bin():
    assert len(_datetime("2024-01-01", "2024-01-01", unit="days").groups) == 1


def test_auto_resolution_picks_the_finest_unit():
    start = pd.Timestamp("2024-01-01", tz="UTC")

    assert datetime_resolution(start, start + pd.Timedelta(days=10)) == "days"
    assert datetime_resolution(start, start + pd.Timedelta(minutes=30)) == "minutes"
    assert datetime_resolution(start, start + pd.Timedelta(days=3650)) == "years"


def test_duration_walk():
    partition = Partition("d", type="duration", minval=pd.Timedelta(0), maxval=pd.Timedelta(hours=10))
    groups = partition.groups

    assert len(groups) == 11
    assert groups[0].min == pd.Timedelta(0)
    assert groups[1].min == pd.Timedelta(hours=1)


def test_duration_degenerate_range_gives_one_bin():
    partition = Partition("d", type="duration", minval=pd.Timedelta(hours=1), maxval=pd.Timedelta(hours=1))

    assert len(partition.groups) == 1


def test_categorial_groups_and_ordering():
    partition = Partition("c", type="categorial", categories=[("A", 1), ("C", 3), ("B", 3)])

    assert [g.value for g in partition.groups] == ["A", "B", "C"]

    partition.ordering = "count"
    assert [g.value for g in partition.groups] == ["B", "C", "A"]
    assert [g.group_index for g in partition.groups] == [0, 1, 2]


def test_group_of_uses_half_open_bins_closed_at_the_edge():
    partition = _continuous(0.0, 10.0, param=2)

    assert partition.group_of(0.0).min == 0.0
    assert partition.group_of(5.0).min == 5.0
    assert partition.group_of(10.0).min == 5.0
    assert partition.group_of(10.5) is None
    assert partition.group_of(-1.0) is None
    assert partition.group_of(MISSING) is None


def test_reset_pulls_type_range_and_categories_from_the_facet():
    facets = FacetCollection([
        Facet(name="x", type="continuous", minval=1.0, maxval=9.0),
    ])
    partition = Partition("x")
    partition.reset(facets)

    assert partition.type == "continuous"
    assert (partition.minval, partition.maxval) == (1.0, 9.0)


def test_reset_with_unknown_facet_leaves_partition_unchanged():
    partition = _continuous(0.0, 10.0)
    partition.reset(FacetCollection())

    assert partition.type == "continuous"
    assert (partition.minval, partition.maxval) == (0.0, 10.0)


def test_text_groups_come_from_rows():
    partition = Partition("comment", type="text")
    partition.set_text_groups([{"a": "hello", "count": 3}, {"a": "bye", "count": 1}, {"a": None}], "a")

    assert [(g.value, g.count) for g in partition.groups] == [("bye", 1.0), ("hello", 3.0)]


def test_partition_collection_sorts_by_rank_and_resets():
    facets = FacetCollection([Facet(name="x", type="continuous", minval=0.0, maxval=1.0)])
    partitions = PartitionCollection()
    second = partitions.add(Partition("x", rank=2), facets)
    first = partitions.add(Partition("y", rank=1), facets)

    assert list(partitions) == [first, second]
    assert second.type == "continuous"
    assert partitions.get_by_rank(2) is second


def test_to_dict_from_dict_keeps_selection():
    partition = _continuous(0.0, 10.0)
    partition.selected = [2.5, 5.0]
    rebuilt = Partition.from_dict(partition.to_dict())

    assert rebuilt.id == partition.id
    assert rebuilt.selected == [2.5, 5.0]
    assert len(rebuilt.groups) == 4
