"""Command line interface and JSON-over-HTTP server for the database."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import sys
import threading
from collections.abc import Mapping
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from dotenv import load_dotenv

from oasysdb.database import VERSION, Database, Parameters
from oasysdb.errors import DatabaseError, InvalidArgumentError, NotFoundError
from oasysdb.index import QueryParameters, QueryResult
from oasysdb.metric import Metric
from oasysdb.record import Record
from oasysdb.vector import Vector

SNAPSHOT_INTERVAL = 600.0
DEFAULT_PORT = 2505

logger = logging.getLogger(__name__)

_HTTP_STATUS = {"invalid_argument": 400, "not_found": 404, "internal": 500}


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {text}") from None
    if not 0 <= value <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {text}")
    return value


def _size(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"number must not be negative: {text}")
    return value


def _metric(text: str) -> Metric:
    try:
        return Metric.parse(text)
    except ValueError as error:
        raise argparse.ArgumentTypeError(str(error)) from None


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="oasysdb", description="Interface to setup and manage OasysDB server"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    commands = parser.add_subparsers(dest="command")

    start = commands.add_parser(
        "start", aliases=["run"], help="Start the database server"
    )
    start.add_argument("--port", type=_port, default=DEFAULT_PORT, help="Port to listen on")
    start.set_defaults(handler=_start)

    configure = commands.add_parser(
        "configure", help="Configure the initial database parameters"
    )
    configure.add_argument("--dim", type=_size, required=True, help="Vector dimension")
    configure.add_argument(
        "--metric",
        type=_metric,
        default=str(Metric.EUCLIDEAN),
        help="Metric to calculate distance",
    )
    configure.add_argument(
        "--density", type=_size, default=256, help="Density of the cluster"
    )
    configure.set_defaults(handler=_configure)
    return parser


def _record_from_json(data: Any) -> Record:
    if not isinstance(data, Mapping):
        raise InvalidArgumentError("Record must be a JSON object")
    vector = data.get("vector")
    if vector is None:
        raise InvalidArgumentError("Vector data should not be empty")
    return Record(Vector(vector), dict(data.get("metadata") or {}))


def _result_to_json(result: QueryResult) -> dict[str, Any]:
    return {
        "id": str(result.id),
        "metadata": dict(result.metadata),
        "distance": result.distance,
    }


def _query_params(data: Any) -> QueryParameters:
    if data is None:
        return QueryParameters()
    defaults = QueryParameters()
    return QueryParameters(
        probes=int(data.get("probes", defaults.probes)),
        radius=float(data.get("radius", defaults.radius)),
    )


def _dispatch(db: Database, method: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Run one request against the database and return the JSON reply."""
    try:
        if method == "heartbeat":
            return {"version": db.heartbeat()}
        if method == "snapshot":
            return {"count": db.create_snapshot().count}
        if method == "insert":
            record = payload.get("record")
            if record is None:
                raise InvalidArgumentError("Record data is required for insertion")
            return {"id": str(db.insert(_record_from_json(record)))}
        if method == "get":
            record = db.get(payload.get("id", ""))
            return {
                "record": {
                    "vector": record.vector.to_list(),
                    "metadata": dict(record.metadata),
                }
            }
        if method == "delete":
            db.delete(payload.get("id", ""))
            return {}
        if method == "update":
            db.update(payload.get("id", ""), dict(payload.get("metadata") or {}))
            return {}
        if method == "query":
            vector = payload.get("vector")
            results = db.query(
                None if vector is None else Vector(vector),
                int(payload.get("k", 0)),
                str(payload.get("filter", "")),
                _query_params(payload.get("params")),
            )
            return {"results": [_result_to_json(r) for r in results]}
    except DatabaseError:
        raise
    except (TypeError, ValueError, KeyError, AttributeError) as error:
        raise InvalidArgumentError(f"Malformed request: {error}") from error
    raise NotFoundError(f"Unknown method: {method}")


class _Handler(BaseHTTPRequestHandler):
    server: _Server

    def do_POST(self) -> None:
        method = self.path.strip("/")
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        try:
            try:
                payload = json.loads(body) if body else {}
            except ValueError:
                raise InvalidArgumentError("Request body must be valid JSON") from None
            if not isinstance(payload, dict):
                raise InvalidArgumentError("Request body must be a JSON object")
            reply = _dispatch(self.server.database, method, payload)
            status = 200
        except DatabaseError as error:
            status = _HTTP_STATUS.get(error.code, 500)
            reply = {"error": error.code, "message": error.message}

        data = json.dumps(reply).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class _Server(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], database: Database, family: int) -> None:
        self.address_family = family
        self.database = database
        super().__init__(address, _Handler)


def _serve(db: Database, port: int) -> _Server:
    try:
        return _Server(("::", port), db, socket.AF_INET6)
    except OSError:
        return _Server(("0.0.0.0", port), db, socket.AF_INET)


def _snapshot_loop(db: Database, stop: threading.Event, interval: float) -> None:
    while not stop.wait(interval):
        try:
            db.create_snapshot()
        except DatabaseError as error:
            logger.error("%s", error)


def _start(args: argparse.Namespace) -> int:
    try:
        db = Database.open()
    except (OSError, ValueError, KeyError) as error:
        logger.error("Failed to open the database: %s", error)
        return 1

    stop = threading.Event()
    snapshots = threading.Thread(
        target=_snapshot_loop, args=(db, stop, SNAPSHOT_INTERVAL), daemon=True
    )
    snapshots.start()

    try:
        server = _serve(db, args.port)
    except OSError as error:
        logger.error("Failed to start the database: %s", error)
        stop.set()
        return 1

    logger.info("Database server is ready on port %d", args.port)
    try:
        with server:
            server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
    return 0


def _configure(args: argparse.Namespace) -> int:
    params = Parameters(dimension=args.dim, metric=args.metric, density=args.density)
    Database.configure(params)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface and return the exit status."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(sys.stderr)
        return 2
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())