import pandas as pd
import pytest

from facet_explorer.core.aggregate import Aggregate
from facet_explorer.core.dataset import ClientDataset
from facet_explorer.core.dataview import Dataview
from facet_explorer.core.facet import Facet
from facet_explorer.core.filter import Filter
from facet_explorer.core.misval import MISSING
from facet_explorer.core.partition import Partition
from facet_explorer.drivers.client import ORIGINAL_DATASET_ID, ClientDriver, detect_type


def _make_dataset():
    return ClientDataset(
        name="people",
        records=[
            {"name": "Jones", "age": 5, "born": "2019-03-01T00:00:00", "wait": "P0DT1H0M0S"},
            {"name": "Smith", "age": 40, "born": "1984-07-12T00:00:00", "wait": "P0DT0H30M0S"},
            {"name": "Jones", "age": 9, "born": "2015-01-20T00:00:00", "wait": None},
            {"name": "Brown", "age": 20},
        ],
    )


def test_detect_type():
    assert detect_type([1, 2.5, None]) == "continuous"
    assert detect_type(["1", "2"]) == "continuous"
    assert detect_type(["2020-01-01", "2021-02-03T10:00:00Z"]) == "datetime"
    assert detect_type([pd.Timedelta(hours=1), "P1DT0H0M0S"]) == "duration"
    assert detect_type(["a", 1]) == "categorial"
    assert detect_type([True, False]) == "categorial"
    assert detect_type([None, None]) == "categorial"


@pytest.mark.asyncio
async def test_scan_creates_facets_with_ranges_and_categories():
    dataset = _make_dataset()
    await ClientDriver().scan(dataset)

    facets = dataset.facets
    assert list(facets) == ["name", "age", "born", "wait"]
    assert [facets[n].type for n in facets] == ["categorial", "continuous", "datetime", "duration"]

    assert (facets["age"].minval, facets["age"].maxval) == (5.0, 40.0)
    assert facets["born"].minval == pd.Timestamp("1984-07-12", tz="UTC")
    assert facets["wait"].maxval == pd.Timedelta(hours=1)

    rules = facets["name"].categorial_transform.rules
    assert [(r.expression, r.count) for r in rules] == [("Brown", 1), ("Jones", 2), ("Smith", 1)]


@pytest.mark.asyncio
async def test_rescan_keeps_configured_facets_and_groups():
    dataset = _make_dataset()
    driver = ClientDriver()
    await driver.scan(dataset)

    dataset.facets["name"].categorial_transform.get_rule("Brown").group = "Other"
    await driver.scan(dataset)

    rule = dataset.facets["name"].categorial_transform.get_rule("Brown")
    assert rule.group == "Other"
    assert rule.count == 1


@pytest.mark.asyncio
async def test_percentiles():
    dataset = _make_dataset()
    driver = ClientDriver()
    await driver.scan(dataset)
    age = dataset.facets["age"]

    await driver.set_percentiles(dataset, age)

    percentiles = age.continuous_transform.percentiles
    assert len(percentiles) == 101
    assert percentiles[0] == 5.0
    assert percentiles[100] == 40.0


@pytest.mark.asyncio
async def test_set_min_max_with_no_values():
    dataset = ClientDataset(records=[{"x": None}])
    facet = Facet(name="x", type="continuous", minval=1.0, maxval=2.0)

    await ClientDriver().set_min_max(dataset, facet)

    assert facet.minval is None
    assert facet.maxval is None


def test_merge_and_unmerge_records():
    dataset = ClientDataset(records=[{"age": "3"}, {"age": "x"}], facets=[Facet(name="age", type="continuous")])
    other = ClientDataset(records=[{"age": 1}], facets=[Facet(name="age", type="continuous")])
    dataview = Dataview(ClientDriver())
    driver = dataview.driver

    assert driver.merge_records(dataview, dataset) == 2
    driver.merge_records(dataview, other)

    records = dataview.index.all()
    assert records[0] == {"age": 3.0, ORIGINAL_DATASET_ID: dataset.id}
    assert records[1]["age"] is MISSING

    assert driver.unmerge_records(dataview, dataset) == 2
    assert dataview.index.all() == [{"age": 1.0, ORIGINAL_DATASET_ID: other.id}]


@pytest.mark.asyncio
async def test_filter_data_ignores_its_own_selection():
    dataview = Dataview(ClientDriver())
    name = Facet(name="name")
    for expression in ("a", "b"):
        name.categorial_transform.add_rule(expression)
    dataview.facets.add(name)
    dataview.facets.add(Facet(name="v", type="continuous", minval=0.0, maxval=10.0))
    dataview.index.add([{"name": "a", "v": 1.0}, {"name": "b", "v": 9.0}, {"name": "a", "v": 3.0}])

    by_name = Filter()
    by_name.add_partition(Partition("name"), dataview.facets)
    overall = Filter()
    overall.add_aggregate(Aggregate("v", "sum"))
    dataview.add_filter(by_name)
    dataview.add_filter(overall)

    by_name.partitions[0].selected = ["a"]
    dataview.update_filter(by_name)
    await dataview.get_data()

    assert [(r["a"], r["count"]) for r in by_name.data] == [("a", 2), ("b", 1)]
    assert overall.data == [{"count": 2, "aa": 4.0}]
    assert dataview.data_selected == 2

    by_name.reset_selection()
    dataview.update_filter(by_name)
    await dataview.get_data()
    assert overall.data == [{"count": 3, "aa": 13.0}]


@pytest.mark.asyncio
async def test_update_rekeys_when_partitions_change():
    dataview = Dataview(ClientDriver())
    dataview.facets.add(Facet(name="v", type="continuous", minval=0.0, maxval=10.0))
    dataview.index.add([{"v": 1.0}, {"v": 9.0}])
    flt = dataview.add_filter(Filter())
    other = dataview.add_filter(Filter())

    flt.add_partition(Partition("v", grouping_param=2), dataview.facets)
    flt.partitions[0].selected = [0.0, 5.0]
    dataview.update_filter(flt)
    await dataview.get_data()

    assert other.data == [{"count": 1}]
