import pytest

from facet_explorer.core.dataset import (
    ClientDataset,
    DatasetCollection,
    GenericDataset,
    ServerDataset,
    create_dataset,
)
from facet_explorer.core.facet import Facet


def test_create_dataset_dispatches_on_type():
    assert isinstance(create_dataset({"datasetType": "client"}), ClientDataset)
    assert isinstance(create_dataset({"dataset_type": "server"}), ServerDataset)
    assert isinstance(create_dataset({"datasetType": "unheard-of"}), GenericDataset)
    assert isinstance(create_dataset({}), GenericDataset)


def test_create_dataset_reads_wire_keys():
    dataset = create_dataset({
        "id": "d1",
        "datasetType": "server",
        "name": "Sales",
        "URL": "http://example.org",
        "databaseTable": "sales",
        "isActive": True,
        "facets": [{"name": "region", "type": "categorial"}],
    })

    assert dataset.id == "d1"
    assert dataset.url == "http://example.org"
    assert dataset.database_table == "sales"
    assert dataset.is_active
    assert list(dataset.facets) == ["region"]


def test_records_are_held_in_the_dataset_index():
    dataset = ClientDataset(name="A", records=[{"x": 1}, {"x": 2}])

    assert dataset.index.size() == 2
    dataset.records = [{"x": 3}]
    assert dataset.records == [{"x": 3}]


def test_active_facets():
    dataset = ClientDataset(facets=[Facet(name="a"), Facet(name="b", is_active=False)])

    assert [f.name for f in dataset.active_facets] == ["a"]


def test_to_dict_leaves_out_records():
    raw = ServerDataset(name="S", database_table="t", records=[{"x": 1}]).to_dict()

    assert raw["datasetType"] == "server"
    assert raw["databaseTable"] == "t"
    assert "records" not in raw


def test_collection():
    datasets = DatasetCollection()
    a = datasets.add(ClientDataset(name="A", is_active=True))
    b = datasets.add(ClientDataset(name="B"))

    assert list(datasets) == [a.id, b.id]
    assert datasets.get_by_name("B") is b
    assert datasets.get_by_name("C") is None
    assert datasets.active() == [a]

    with pytest.raises(ValueError):
        datasets.add(a)

    datasets.remove(a)
    assert len(datasets) == 1
