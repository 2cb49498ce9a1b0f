# oasysdb

A small vector database. Records hold a fixed-length vector of 32-bit
floats and a flat metadata map of text, number and boolean values. Records
are indexed with an IVF index: a cluster that grows past its density is
split in two with k-means, so the index keeps a balanced shape as data
grows. Queries find the nearest records to a vector, within a radius,
filtered by metadata.

## Installation

```
pip install .
```

## Command line

The database lives in the directory named by the `ODB_DIR` environment
variable, or in `./oasysdb` when it is unset. A `.env` file in the working
directory is read as well.

Configure a new database before starting it:

```
oasysdb configure --dim 128
oasysdb configure --dim 768 --metric cosine --density 256
```

- `--dim` is the vector dimension (required).
- `--metric` is `euclidean` (the default) or `cosine`, in any case.
- `--density` is the largest number of records in a cluster before it is
  split (default 256).

If the directory is already configured you are asked on the terminal
whether to overwrite it; answering `y` deletes the directory and writes a
fresh, empty database.

Start the server:

```
oasysdb start --port 2505
```

`run` is accepted as another name for `start`; the port defaults to 2505.
The server listens on all IPv6 addresses, or on all IPv4 addresses where
IPv6 is unavailable. While it runs, a snapshot is written to disk every ten
minutes. `oasysdb --version` prints the version.

## HTTP interface

Each operation is a `POST` to `/<method>` with a JSON object as the body;
the reply is a JSON object.

| Method      | Request body                                                          | Reply                                   |
|-------------|-----------------------------------------------------------------------|-----------------------------------------|
| `heartbeat` | `{}`                                                                  | `{"version": "0.8.0"}`                  |
| `snapshot`  | `{}`                                                                  | `{"count": <records>}`                  |
| `insert`    | `{"record": {"vector": [...], "metadata": {...}}}`                    | `{"id": "<uuid>"}`                      |
| `get`       | `{"id": "<uuid>"}`                                                    | `{"record": {"vector": [...], "metadata": {...}}}` |
| `delete`    | `{"id": "<uuid>"}`                                                    | `{}`                                    |
| `update`    | `{"id": "<uuid>", "metadata": {...}}`                                 | `{}`                                    |
| `query`     | `{"vector": [...], "k": 10, "filter": "...", "params": {"probes": 32, "radius": 1.5}}` | `{"results": [{"id", "metadata", "distance"}, ...]}` |

`filter` and `params` may be left out, as may either key of `params`.
Failures reply with `{"error": <code>, "message": <text>}` and status 400
(`invalid_argument`), 404 (`not_found`, also for an unknown method) or 500
(`internal`).

```python
import json
import urllib.request

def call(method, body):
    request = urllib.request.Request(
        f"http://localhost:2505/{method}",
        data=json.dumps(body).encode(),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(request) as response:
        return json.load(response)

record_id = call("insert", {"record": {"vector": [0.1] * 128, "metadata": {"name": "Ada"}}})["id"]
print(call("query", {"vector": [0.1] * 128, "k": 5, "filter": "name = Ada"}))
```

## Library use

```python
from oasysdb.database import Database, Parameters
from oasysdb.metric import Metric
from oasysdb.record import Record
from oasysdb.vector import Vector

Database.configure(Parameters(dimension=128, metric=Metric.EUCLIDEAN, density=256))
db = Database.open()

record_id = db.insert(Record(vector=Vector([0.1] * 128), metadata={"name": "Ada", "age": 36}))
print(db.get(record_id))

results = db.query(Vector([0.1] * 128), 10, "age >= 30 AND name CONTAINS Ad", None)
for result in results:
    print(result.id, result.distance, result.metadata)

db.create_snapshot()
```

- `Database.configure(params, confirm=None)` takes an optional callable that
  decides whether an existing database is overwritten; it returns `False`
  when the existing database is kept.
- `insert` returns a `RecordID`; `get`, `delete` and `update` accept a
  `RecordID` or its string form. Integer metadata values are stored as
  floats. Deleting an unknown ID does nothing.
- `query(vector, k, filter, params)` returns `QueryResult` objects, nearest
  first. `params` is an `oasysdb.index.QueryParameters`: `probes` is the
  number of clusters visited (default 32) and `radius` the largest distance
  kept (default: no limit).
- Errors are raised as `oasysdb.errors.InvalidArgumentError`,
  `NotFoundError` or `InternalError`, all subclasses of `DatabaseError`.

The building blocks are usable on their own: `oasysdb.index.Index`,
`oasysdb.storage.Storage`, `oasysdb.kmeans.KMeans`, `oasysdb.filter.Filters`
and `oasysdb.metric.Metric`.

### Filters

A filter is `key operator value`. Operators are `=`, `!=`, `>`, `>=`, `<`,
`<=` and `CONTAINS` (text only); booleans support only `=` and `!=`. Values
that read as numbers become numbers, `true` and `false` become booleans,
anything else is text with surrounding quotes removed. A filter on a
missing key or a value of another type does not match. Several filters are
joined with ` AND ` or ` OR `; mixing the two in one expression is an
error. An empty filter matches every record.

### Metrics

- `euclidean`: squared Euclidean distance.
- `cosine`: cosine distance, so a lower value is always a closer match.

## Storage on disk

A snapshot writes three JSON files to the database directory, `odb_params`,
`odb_index` and `odb_storage`, each first written to the `tmp`
subdirectory and then moved into place.

## What it does not do

- The server speaks plain JSON over HTTP only; there is no gRPC or
  protobuf interface, no TLS and no authentication.
- Changes live in memory until the next snapshot. The server writes no
  snapshot when it stops, so changes since the last one (periodic or
  requested through `snapshot`) are lost.

## Running the tests

```
pip install ".[test]"
pytest
```