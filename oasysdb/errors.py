"""Exceptions raised by the database and its data types."""

from __future__ import annotations


class DatabaseError(Exception):
    """Base class for every error the database reports."""

    code = "unknown"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidArgumentError(DatabaseError, ValueError):
    """A request carried data that the database cannot accept."""

    code = "invalid_argument"


class NotFoundError(DatabaseError, LookupError):
    """The requested record does not exist."""

    code = "not_found"


class InternalError(DatabaseError):
    """The database failed while carrying out a valid request."""

    code = "internal"