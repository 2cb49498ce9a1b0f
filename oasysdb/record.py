"""Records, their identifiers and metadata values."""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from typing import Dict, Union

from oasysdb.errors import InvalidArgumentError
from oasysdb.vector import Vector

Value = Union[str, float, bool]
Metadata = Dict[str, Value]

_QUOTES = "\"'"


@dataclass(frozen=True, order=True)
class RecordID:
    """A random UUID identifying a record."""

    uuid: uuid.UUID

    @classmethod
    def new(cls) -> RecordID:
        return cls(uuid.uuid4())

    @classmethod
    def parse(cls, text: str) -> RecordID:
        """Parse a string-encoded UUID."""
        try:
            return cls(uuid.UUID(text))
        except (ValueError, TypeError, AttributeError):
            raise InvalidArgumentError(
                "Record ID should be a string-encoded UUID"
            ) from None

    def __str__(self) -> str:
        return str(self.uuid)


def _parse_number(text: str) -> float | None:
    # Reject forms the float constructor tolerates but a strict parser does not.
    if not text or "_" in text or text != text.strip():
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_value(text: str) -> Value:
    """Turn a string into a number, a boolean or a text value.

    Numbers take priority over booleans; text loses its surrounding quotes.
    """
    number = _parse_number(text)
    if number is not None:
        return number
    if text == "true":
        return True
    if text == "false":
        return False
    return text.lstrip(_QUOTES).rstrip(_QUOTES)


def random_value() -> Value:
    """Return a random number value in [0, 1)."""
    return random.random()


@dataclass
class Record:
    """A vector with its key-value metadata."""

    vector: Vector
    metadata: Metadata = field(default_factory=dict)

    @classmethod
    def random(cls, dimension: int) -> Record:
        return cls(Vector.random(dimension), {"key": random_value()})