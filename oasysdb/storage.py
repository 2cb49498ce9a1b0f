"""In-memory record storage."""

from __future__ import annotations

from collections.abc import Mapping

from oasysdb.errors import NotFoundError
from oasysdb.record import Metadata, Record, RecordID, Value

_NOT_FOUND = "The specified record is not found"


class Storage:
    """Records keyed by their identifiers."""

    def __init__(self) -> None:
        self._count = 0
        self._records: dict[RecordID, Record] = {}

    def insert(self, record_id: RecordID, record: Record) -> None:
        """Store a copy of the record under the given ID."""
        if record_id not in self._records:
            self._count += 1
        self._records[record_id] = Record(record.vector, dict(record.metadata))

    def get(self, record_id: RecordID) -> Record:
        """Return the record with the given ID."""
        try:
            return self._records[record_id]
        except KeyError:
            raise NotFoundError(_NOT_FOUND) from None

    def delete(self, record_id: RecordID) -> None:
        """Remove the record with the given ID, if it exists."""
        if self._records.pop(record_id, None) is not None:
            self._count -= 1

    def update(self, record_id: RecordID, metadata: Mapping[str, Value]) -> None:
        """Replace the metadata of a record; its vector is left as it is."""
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(_NOT_FOUND)
        new_metadata: Metadata = dict(metadata)
        record.metadata = new_metadata

    def records(self) -> dict[RecordID, Record]:
        """Return the stored records keyed by ID."""
        return self._records

    def count(self) -> int:
        """Return the number of stored records."""
        return self._count