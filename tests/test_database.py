import io
import uuid
from pathlib import Path

import pytest

from oasysdb.database import Database, Parameters, SnapshotStats, database_dir
from oasysdb.errors import InvalidArgumentError, NotFoundError
from oasysdb.index import QueryParameters
from oasysdb.metric import Metric
from oasysdb.record import Record, RecordID
from oasysdb.vector import Vector

DEFAULT = Parameters(dimension=128, metric=Metric.EUCLIDEAN, density=64)


@pytest.fixture
def db_dir(tmp_path, monkeypatch):
    path = tmp_path / "db"
    monkeypatch.setenv("ODB_DIR", str(path))
    return path


@pytest.fixture
def db(db_dir):
    assert Database.configure(DEFAULT) is True
    return Database.open()


def test_open(db):
    assert db.params == DEFAULT


def test_heartbeat(db):
    assert db.heartbeat() == "0.8.0"


def test_insert(db):
    record = Record(Vector.random(DEFAULT.dimension), {})
    record_id = db.insert(record)
    assert uuid.UUID(str(record_id)) == record_id.uuid
    assert db.create_snapshot() == SnapshotStats(1)


def test_insert_requires_record(db):
    with pytest.raises(InvalidArgumentError):
        db.insert(None)


def test_insert_wrong_dimension(db):
    with pytest.raises(InvalidArgumentError, match="expected 128, got 3"):
        db.insert(Record(Vector([1.0, 2.0, 3.0]), {}))


def test_insert_rejects_missing_metadata_value(db):
    with pytest.raises(InvalidArgumentError, match="Metadata value is required"):
        db.insert(Record(Vector.random(DEFAULT.dimension), {"key": None}))


def test_get_round_trip(db):
    vector = Vector([0.5] * DEFAULT.dimension)
    record_id = db.insert(Record(vector, {"name": "Ada", "age": 36}))
    record = db.get(str(record_id))
    assert record.vector == vector
    assert record.metadata == {"name": "Ada", "age": 36.0}


def test_get_unknown(db):
    with pytest.raises(NotFoundError):
        db.get(RecordID.new())


def test_get_bad_id(db):
    with pytest.raises(InvalidArgumentError):
        db.get("not-a-uuid")


def test_update(db):
    record_id = db.insert(Record(Vector.random(DEFAULT.dimension), {"key": 1.0}))
    db.update(record_id, {"key": "value", "flag": True})
    assert db.get(record_id).metadata == {"key": "value", "flag": True}


def test_update_unknown(db):
    with pytest.raises(NotFoundError):
        db.update(RecordID.new(), {"key": 1.0})


def test_delete(db):
    record_id = db.insert(Record(Vector.random(DEFAULT.dimension), {}))
    db.delete(record_id)
    with pytest.raises(NotFoundError):
        db.get(record_id)
    assert db.create_snapshot().count == 0


def _populate(db, n=10):
    ids = []
    for i in range(n):
        vector = Vector([float(i)] * DEFAULT.dimension)
        ids.append(db.insert(Record(vector, {"number": float(1000 + i)})))
    return ids


def test_query_nearest_first(db):
    ids = _populate(db)
    results = db.query([1.0] * DEFAULT.dimension, 3)
    assert len(results) == 3
    assert results[0].id == ids[1]
    assert results[0].distance == 0.0
    distances = [r.distance for r in results]
    assert distances == sorted(distances)


def test_query_with_filter(db):
    ids = _populate(db)
    results = db.query([1.0] * DEFAULT.dimension, 3, "number > 1005")
    assert [r.id for r in results] == ids[6:9]


def test_query_radius(db):
    _populate(db)
    params = QueryParameters(probes=32, radius=0.0)
    results = db.query([2.0] * DEFAULT.dimension, 5, "", params)
    assert len(results) == 1


def test_query_invalid_k(db):
    with pytest.raises(InvalidArgumentError, match="k must be greater than 0"):
        db.query([0.0] * DEFAULT.dimension, 0)


def test_query_requires_vector(db):
    with pytest.raises(InvalidArgumentError):
        db.query(None, 1)


def test_query_mixed_filter(db):
    with pytest.raises(InvalidArgumentError):
        db.query([0.0] * DEFAULT.dimension, 1, "a = 1 AND b = 2 OR c = 3")


def test_snapshot_persists(db):
    vector = Vector.random(DEFAULT.dimension)
    record_id = db.insert(Record(vector, {"name": "Ada"}))
    assert db.create_snapshot().count == 1

    reopened = Database.open()
    assert reopened.get(record_id).vector == vector
    assert reopened.get(record_id).metadata == {"name": "Ada"}
    assert reopened.query(vector, 1)[0].id == record_id


def test_configure_keep_existing(db):
    db.insert(Record(Vector.random(DEFAULT.dimension), {}))
    db.create_snapshot()
    assert Database.configure(DEFAULT, confirm=lambda: False) is False
    assert Database.open().create_snapshot().count == 1


def test_configure_reset(db, capsys):
    db.insert(Record(Vector.random(DEFAULT.dimension), {}))
    db.create_snapshot()
    assert Database.configure(DEFAULT, confirm=lambda: True) is True
    assert "reset successfully" in capsys.readouterr().out
    assert Database.open().create_snapshot().count == 0


def test_configure_prompt_reads_stdin(db, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("n\n"))
    assert Database.configure(Parameters(4)) is False
    assert Database.open().params == DEFAULT


def test_open_unconfigured(db_dir):
    with pytest.raises(FileNotFoundError):
        Database.open()


def test_database_dir_default(monkeypatch):
    monkeypatch.delenv("ODB_DIR", raising=False)
    assert database_dir() == Path("oasysdb")


def test_database_dir_from_env(db_dir):
    assert database_dir() == db_dir