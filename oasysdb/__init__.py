"""Vector database with a self-balancing IVF index, metadata filters, JSON snapshots and an HTTP server."""

__version__ = "0.8.0"