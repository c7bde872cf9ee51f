import json

import pytest

from propviz.services.history import VisualizationHistory, VisualizationRecord
from propviz.utils.exceptions import NotFoundError

def make_record(n):
    return VisualizationRecord.create(
        viz_type="paint",
        option=f"color {n}",
        original_url=f"https://cdn.test/uploads/{n}.jpg",
        generated_url=f"https://cdn.test/generated/{n}.png",
    )

def test_newest_first(tmp_path):
    history = VisualizationHistory(path=str(tmp_path / "h.json"))
    first = history.save(make_record(1))
    second = history.save(make_record(2))

    assert [r.id for r in history.list()] == [second.id, first.id]

def test_limit_evicts_oldest(tmp_path):
    history = VisualizationHistory(path=str(tmp_path / "h.json"), limit=20)
    saved = [history.save(make_record(n)) for n in range(25)]

    records = history.list()

    assert len(records) == 20
    assert records[0].id == saved[-1].id
    assert records[-1].id == saved[5].id
    assert saved[4].id not in {r.id for r in records}

def test_persists_across_instances(tmp_path):
    path = str(tmp_path / "h.json")
    record = VisualizationHistory(path=path).save(make_record(1))

    loaded = VisualizationHistory(path=path).list()
    assert loaded == [record]

def test_delete(tmp_path):
    history = VisualizationHistory(path=str(tmp_path / "h.json"))
    keep = history.save(make_record(1))
    drop = history.save(make_record(2))

    history.delete(drop.id)

    assert history.list() == [keep]
    with pytest.raises(NotFoundError):
        history.delete(drop.id)

def test_clear(tmp_path):
    history = VisualizationHistory(path=str(tmp_path / "h.json"))
    for n in range(3):
        history.save(make_record(n))

    assert history.clear() == 3
    assert history.list() == []

def test_missing_file_is_empty(tmp_path):
    assert VisualizationHistory(path=str(tmp_path / "none.json")).list() == []

def test_corrupt_file_is_empty(tmp_path):
    path = tmp_path / "h.json"
    path.write_text("{not json")

    history = VisualizationHistory(path=str(path))
    assert history.list() == []

    history.save(make_record(1))
    assert len(history.list()) == 1

def test_file_that_is_not_a_list_is_empty(tmp_path):
    path = tmp_path / "h.json"
    path.write_text(json.dumps({"records": []}))

    history = VisualizationHistory(path=str(path))
    assert history.list() == []

    history.save(make_record(1))
    assert len(history.list()) == 1

def test_malformed_entries_are_skipped(tmp_path):
    path = tmp_path / "h.json"
    good = make_record(1)
    path.write_text(json.dumps([
        {"id": "x", "type": "paint"},
        "not an entry",
        good.to_dict(),
    ]))

    assert [r.id for r in VisualizationHistory(path=str(path)).list()] == [good.id]
