"""Tests for export / import_."""

import json
from datetime import date

from envelope_kv.substrates import InMemorySubstrate


def test_export_round_trip_into_fresh_engine(engine, make_engine):
    engine.set("user", {"name": "alice"})
    engine.set("tags", {"a", "b"})
    engine.set("born", date(1990, 1, 2))

    document = engine.export()
    target = make_engine("restore", substrate=InMemorySubstrate())

    assert target.import_(document)
    assert target.get("user") == {"name": "alice"}
    assert target.get("tags") == {"a", "b"}
    assert target.get("born") == date(1990, 1, 2)


def test_export_is_plain_json_of_logical_keys(engine):
    engine.set("a", 1)
    engine.set("b", [1, 2])
    assert json.loads(engine.export()) == {"a": 1, "b": [1, 2]}


def test_export_skips_expired_unless_asked(engine, clock):
    engine.set("live", 1)
    engine.set("stale", 2, ttl=1)
    clock.advance(2)
    assert json.loads(engine.export(include_expired=True)) == {"live": 1, "stale": 2}
    assert json.loads(engine.export()) == {"live": 1}


def test_import_replaces_by_default(engine):
    engine.set("keep", 1)
    assert engine.import_({"new": 2})
    assert engine.keys() == ["new"]


def test_import_merge_keeps_existing(engine):
    engine.set("a", "local")
    engine.import_({"a": "remote", "b": "remote"}, merge=True)
    assert engine.get("a") == "local"
    assert engine.get("b") == "remote"


def test_import_merge_with_overwrite(engine):
    engine.set("a", "local")
    engine.import_({"a": "remote"}, merge=True, overwrite=True)
    assert engine.get("a") == "remote"


def test_import_emits_count(engine):
    counts = []
    changes = []
    engine.on("import", counts.append)
    engine.on("change", lambda *a: changes.append(a))
    engine.import_('{"a": 1, "b": 2}')
    assert counts == [2]
    assert changes == []


def test_import_rejects_invalid_document(engine):
    errors = []
    engine.on("error", errors.append)
    engine.set("a", 1)
    assert engine.import_("[1, 2, 3]") is False
    assert engine.import_("{not json") is False
    assert engine.get("a") == 1
    assert [e.operation for e in errors] == ["import", "import"]
