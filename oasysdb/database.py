"""The database: persistent parameters, record storage and the search index."""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from oasysdb.errors import InternalError, InvalidArgumentError
from oasysdb.filter import Filters
from oasysdb.index import Index, QueryParameters, QueryResult
from oasysdb.metric import Metric
from oasysdb.record import Metadata, Record, RecordID, Value
from oasysdb.storage import Storage
from oasysdb.vector import Vector

VERSION = "0.8.0"

_TMP_DIR = "tmp"
_PARAMS_FILE = "odb_params"
_STORAGE_FILE = "odb_storage"
_INDEX_FILE = "odb_index"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Parameters:
    """Database parameters.

    ``dimension`` is the vector dimension, ``metric`` the distance formula
    and ``density`` the largest number of records per index cluster.
    """

    dimension: int
    metric: Metric = Metric.EUCLIDEAN
    density: int = 256


@dataclass(frozen=True, order=True)
class SnapshotStats:
    """Statistics about a snapshot written to disk."""

    count: int


def database_dir() -> Path:
    """Return the database directory, taken from ODB_DIR if it is set."""
    return Path(os.environ.get("ODB_DIR", "oasysdb"))


def _ask_overwrite() -> bool:
    print("Database is already configured. Overwrite? (y/n): ", end="", file=sys.stderr)
    sys.stderr.flush()
    return sys.stdin.readline().lower().strip() == "y"


def _check_metadata(metadata: Mapping[str, Any]) -> Metadata:
    checked: Metadata = {}
    for key, value in metadata.items():
        if value is None:
            raise InvalidArgumentError("Metadata value is required")
        if isinstance(value, (bool, str)):
            checked[key] = value
        elif isinstance(value, (int, float)):
            checked[key] = float(value)
        else:
            raise InvalidArgumentError(f"Unsupported metadata value for key {key!r}")
    return checked


def _to_id(record_id: RecordID | str) -> RecordID:
    if isinstance(record_id, RecordID):
        return record_id
    return RecordID.parse(record_id)


def _encode_params(params: Parameters) -> dict[str, Any]:
    return {
        "dimension": params.dimension,
        "metric": str(params.metric),
        "density": params.density,
    }


def _decode_params(data: Mapping[str, Any]) -> Parameters:
    return Parameters(
        int(data["dimension"]), Metric.parse(data["metric"]), int(data["density"])
    )


def _encode_index(index: Index) -> dict[str, Any]:
    return {
        "metric": str(index.metric),
        "density": index.density,
        "centroids": [c.to_list() for c in index.centroids],
        "clusters": [[str(rid) for rid in cluster] for cluster in index.clusters],
    }


def _decode_index(data: Mapping[str, Any]) -> Index:
    index = Index(Metric.parse(data["metric"]), int(data["density"]))
    index.centroids = [Vector(c) for c in data["centroids"]]
    index.clusters = [[RecordID.parse(s) for s in cluster] for cluster in data["clusters"]]
    return index


def _encode_storage(storage: Storage) -> dict[str, Any]:
    return {
        "records": {
            str(rid): {"vector": rec.vector.to_list(), "metadata": dict(rec.metadata)}
            for rid, rec in storage.records().items()
        }
    }


def _decode_storage(data: Mapping[str, Any]) -> Storage:
    storage = Storage()
    for key, rec in data["records"].items():
        record = Record(Vector(rec["vector"]), dict(rec["metadata"]))
        storage.insert(RecordID.parse(key), record)
    return storage


def _load_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as file:
        return json.load(file)


class Database:
    """A vector database kept in memory and snapshotted to a directory."""

    def __init__(
        self, directory: Path, params: Parameters, index: Index, storage: Storage
    ) -> None:
        self.directory = Path(directory)
        self.params = params
        self._index = index
        self._storage = storage
        self._lock = threading.RLock()

    @classmethod
    def configure(
        cls, params: Parameters, confirm: Callable[[], bool] | None = None
    ) -> bool:
        """Set up the database directory with the given parameters.

        If the database is already configured, ``confirm`` (by default a
        prompt on standard input) decides whether it is reset. Returns False
        when the existing database is kept.
        """
        directory = database_dir()
        db = cls(directory, params, Index(params.metric, params.density), Storage())

        if (directory / _PARAMS_FILE).exists():
            ask = confirm if confirm is not None else _ask_overwrite
            if not ask():
                return False
            shutil.rmtree(directory)
            print("The database has been reset successfully")

        db._setup_dir()
        return True

    @classmethod
    def open(cls) -> Database:
        """Restore the database from its directory."""
        directory = database_dir()
        params = _decode_params(_load_json(directory / _PARAMS_FILE))
        index = _decode_index(_load_json(directory / _INDEX_FILE))
        storage = _decode_storage(_load_json(directory / _STORAGE_FILE))
        logger.info("Restored %d record(s) from the disk", storage.count())
        return cls(directory, params, index, storage)

    def _setup_dir(self) -> None:
        if self.directory.exists():
            return
        (self.directory / _TMP_DIR).mkdir(parents=True, exist_ok=True)
        self.create_snapshot()

    def _persist(self, name: str, data: Any) -> None:
        tmp_file = self.directory / _TMP_DIR / name
        with open(tmp_file, "w", encoding="utf-8") as file:
            json.dump(data, file)
        os.replace(tmp_file, self.directory / name)

    def create_snapshot(self) -> SnapshotStats:
        """Write the parameters, index and records to disk."""
        try:
            with self._lock:
                self._persist(_PARAMS_FILE, _encode_params(self.params))
                self._persist(_INDEX_FILE, _encode_index(self._index))
                self._persist(_STORAGE_FILE, _encode_storage(self._storage))
                count = self._storage.count()
        except OSError as error:
            raise InternalError(f"Failed to create a snapshot: {error}") from error
        logger.info("Created a snapshot with %d record(s)", count)
        return SnapshotStats(count)

    def _validate_dimension(self, vector: Vector) -> None:
        if len(vector) != self.params.dimension:
            raise InvalidArgumentError(
                f"Invalid vector dimension: expected {self.params.dimension}, "
                f"got {len(vector)}"
            )

    def heartbeat(self) -> str:
        """Return the server version."""
        return VERSION

    def insert(self, record: Record | None) -> RecordID:
        """Store a new record and return its generated ID."""
        if record is None:
            raise InvalidArgumentError("Record data is required for insertion")
        if record.vector is None:
            raise InvalidArgumentError("Vector data should not be empty")
        vector = record.vector if isinstance(record.vector, Vector) else Vector(record.vector)
        record = Record(vector, _check_metadata(record.metadata))
        self._validate_dimension(record.vector)

        record_id = RecordID.new()
        with self._lock:
            # The index needs the record in storage when a cluster splits.
            self._storage.insert(record_id, record)
            self._index.insert(record_id, record, self._storage.records())

        logger.info("Inserted a new record with ID: %s", record_id)
        return record_id

    def get(self, record_id: RecordID | str) -> Record:
        """Return a copy of the record with the given ID."""
        rid = _to_id(record_id)
        with self._lock:
            record = self._storage.get(rid)
            return Record(record.vector, dict(record.metadata))

    def delete(self, record_id: RecordID | str) -> None:
        """Remove a record from the index and the storage."""
        rid = _to_id(record_id)
        with self._lock:
            self._index.delete(rid)
            self._storage.delete(rid)
        logger.info("Deleted a record with ID: %s", rid)

    def update(self, record_id: RecordID | str, metadata: Mapping[str, Value]) -> None:
        """Replace the metadata of a record."""
        rid = _to_id(record_id)
        checked = _check_metadata(metadata)
        with self._lock:
            self._storage.update(rid, checked)
        logger.info("Updated metadata for a record: %s", rid)

    def query(
        self,
        vector: Vector | Iterable[float] | None,
        k: int,
        filter: str | Filters = "",
        params: QueryParameters | None = None,
    ) -> list[QueryResult]:
        """Return up to ``k`` records nearest to the vector, nearest first."""
        if vector is None:
            raise InvalidArgumentError("Vector is required for query operation")
        if not isinstance(vector, Vector):
            vector = Vector(vector)
        self._validate_dimension(vector)

        if k <= 0:
            raise InvalidArgumentError("Invalid k value, k must be greater than 0")

        filters = filter if isinstance(filter, Filters) else Filters.parse(filter)
        params = params if params is not None else QueryParameters()

        with self._lock:
            return self._index.query(
                vector, k, filters, params, self._storage.records()
            )