import pytest

from facet_explorer.config.model import SessionConfig
from facet_explorer.core.aggregate import Aggregate
from facet_explorer.core.filter import Filter
from facet_explorer.core.partition import Partition
from facet_explorer.core.time_util import DAY_NAMES
from facet_explorer.drivers.client import ClientDriver
from facet_explorer.services.session import Session


async def _make_session():
    session = Session(SessionConfig())
    a = session.add_dataset(
        name="A",
        dataset_type="client",
        records=[
            {"lastName": "Jones", "age": 5},
            {"lastName": "Smith", "age": 40},
            {"lastName": "Brown", "age": 20},
        ],
    )
    b = session.add_dataset(
        name="B",
        dataset_type="client",
        records=[
            {"lastName": "Jones", "age": 9},
            {"lastName": "Smith", "age": 60},
        ],
    )
    await session.scan(a)
    await session.scan(b)
    return session, a, b


def test_session_picks_the_client_driver():
    session = Session()

    assert isinstance(session.driver, ClientDriver)
    assert session.is_client
    assert session.is_connected


@pytest.mark.asyncio
async def test_jones_average_age_across_two_datasets():
    session, a, b = await _make_session()
    await session.toggle_dataset(a)
    await session.toggle_dataset(b)
    dataview = session.dataview

    by_name = Filter(title="by name")
    by_name.add_partition(Partition("lastName"), dataview.facets)
    by_name.add_aggregate(Aggregate("age", "avg"))
    overall = Filter(title="overall")
    overall.add_aggregate(Aggregate("age", "avg"))
    session.add_filter(by_name)
    session.add_filter(overall)

    await dataview.get_data()
    assert {row["a"]: row["aa"] for row in by_name.data} == {"Brown": 20.0, "Jones": 7.0, "Smith": 50.0}

    partition = by_name.partitions[0]
    jones = next(g for g in partition.groups if g.value == "Jones")
    await session.select(by_name, partition, jones)

    assert partition.selected == ["Jones"]
    assert overall.data == [{"count": 2, "aa": 7.0}]
    assert dataview.data_total == 5
    assert dataview.data_selected == 2


@pytest.mark.asyncio
async def test_toggle_on_and_off_restores_the_dataview():
    session, a, b = await _make_session()
    dataview = session.dataview
    await session.toggle_dataset(a)

    total = dataview.data_total
    facet_names = list(dataview.facets)
    age_range = (dataview.facets["age"].minval, dataview.facets["age"].maxval)

    await session.toggle_dataset(b)
    assert dataview.data_total == 5
    assert dataview.facets["age"].maxval == 60.0

    await session.toggle_dataset(b)
    assert not b.is_active
    assert dataview.data_total == total == 3
    assert list(dataview.facets) == facet_names
    assert (dataview.facets["age"].minval, dataview.facets["age"].maxval) == age_range


@pytest.mark.asyncio
async def test_categories_are_merged_by_expression():
    session, a, b = await _make_session()
    await session.toggle_dataset(a)
    await session.toggle_dataset(b)

    rules = session.dataview.facets["lastName"].categorial_transform.rules
    assert {r.expression: r.count for r in rules} == {"Brown": 1, "Jones": 2, "Smith": 2}
    assert session.dataview.dataset_ids == [a.id, b.id]


@pytest.mark.asyncio
async def test_shared_facets_are_reference_counted():
    session, a, _ = await _make_session()
    c = session.add_dataset(name="C", dataset_type="client", records=[{"lastName": "Jones", "city": "Delft"}])
    await session.scan(c)

    await session.toggle_dataset(a)
    await session.toggle_dataset(c)
    assert sorted(session.dataview.facets) == ["age", "city", "lastName"]

    await session.toggle_dataset(c)
    assert sorted(session.dataview.facets) == ["age", "lastName"]

    await session.toggle_dataset(a)
    assert list(session.dataview.facets) == []
    assert session.dataview.data_total == 0


@pytest.mark.asyncio
async def test_filters_survive_a_toggle():
    session, a, b = await _make_session()
    await session.toggle_dataset(a)

    by_name = Filter(title="by name")
    by_name.add_partition(Partition("lastName"), session.dataview.facets)
    session.add_filter(by_name)
    await session.dataview.get_data()
    assert len(by_name.data) == 3

    await session.toggle_dataset(b)
    assert {row["a"]: row["count"] for row in by_name.data} == {"Brown": 1, "Jones": 2, "Smith": 2}


@pytest.mark.asyncio
async def test_paused_toggle_skips_filter_data_but_updates_counts():
    session, a, _ = await _make_session()
    flt = session.add_filter(Filter())
    session.dataview.pause()

    await session.toggle_dataset(a)

    assert session.dataview.data_total == 3
    assert flt.data == []


@pytest.mark.asyncio
async def test_datetime_time_part_gives_fixed_categories():
    session = Session()
    dataset = session.add_dataset(
        name="visits",
        dataset_type="client",
        records=[{"when": "2024-01-01T10:00:00"}, {"when": "2024-01-06T10:00:00"}],
    )
    await session.scan(dataset)
    dataset.facets["when"].datetime_transform.transformed_format = "Day of week (Monday)"

    await session.toggle_dataset(dataset)

    merged = session.dataview.facets["when"]
    assert merged.type == "categorial"
    assert merged.categories == DAY_NAMES
    assert [r["when"] for r in session.dataview.index.all()] == ["Monday", "Saturday"]


@pytest.mark.asyncio
async def test_new_partitions_get_the_configured_zone():
    session = Session(SessionConfig(default_zone="Europe/Amsterdam"))
    a = session.add_dataset(name="A", dataset_type="client", records=[{"lastName": "Jones", "age": 5}])
    await session.scan(a)
    await session.toggle_dataset(a)
    flt = session.add_filter(Filter())

    added = session.add_partition(flt, Partition("lastName"))
    explicit = session.add_partition(flt, Partition("age", rank=2, zone="Asia/Tokyo"))

    assert added.zone == "Europe/Amsterdam"
    assert explicit.zone == "Asia/Tokyo"
    await session.dataview.get_data()
    assert flt.data == [{"a": "Jones", "b": 5.0, "count": 1}]
