"""Metadata filters for queries."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Tuple

from oasysdb.errors import InvalidArgumentError
from oasysdb.record import Value, parse_value

_OR = " OR "
_AND = " AND "


def _kind(value: object) -> str | None:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "text"
    return None


class Operator(enum.Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    CONTAINS = "CONTAINS"

    @classmethod
    def parse(cls, text: str) -> Operator:
        try:
            return cls(text)
        except ValueError:
            raise InvalidArgumentError(f"Invalid filter operator: {text}") from None


@dataclass(frozen=True, eq=False)
class Filter:
    """A comparison of one metadata key against a value."""

    key: str
    value: Value
    operator: Operator

    @classmethod
    def parse(cls, text: str) -> Filter:
        """Parse a filter of the form "<key> <operator> <value>"."""
        if not text:
            raise InvalidArgumentError("Filter string cannot be empty")
        parts = [part.strip() for part in text.split(" ", 2)]
        if len(parts) < 3:
            raise InvalidArgumentError(
                f"Filter must have a key, an operator and a value: {text}"
            )
        key, operator, value = parts
        return cls(key, parse_value(value), Operator.parse(operator))

    def apply(self, metadata: Mapping[str, Value]) -> bool:
        """Return True if the metadata passes this filter."""
        if self.key not in metadata:
            return False
        actual = metadata[self.key]
        kind = _kind(actual)
        if kind is None or kind != _kind(self.value):
            return False
        op = self.operator
        if kind == "text":
            if op is Operator.EQUAL:
                return actual == self.value
            if op is Operator.NOT_EQUAL:
                return actual != self.value
            if op is Operator.CONTAINS:
                return self.value in actual
            return False
        if kind == "number":
            a, b = float(actual), float(self.value)
            comparisons = {
                Operator.EQUAL: a == b,
                Operator.NOT_EQUAL: a != b,
                Operator.GREATER_THAN: a > b,
                Operator.GREATER_THAN_OR_EQUAL: a >= b,
                Operator.LESS_THAN: a < b,
                Operator.LESS_THAN_OR_EQUAL: a <= b,
            }
            return comparisons.get(op, False)
        if op is Operator.EQUAL:
            return actual == self.value
        if op is Operator.NOT_EQUAL:
            return actual != self.value
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return (
            self.key == other.key
            and self.operator is other.operator
            and _kind(self.value) == _kind(other.value)
            and self.value == other.value
        )

    def __hash__(self) -> int:
        return hash((self.key, self.operator, _kind(self.value), self.value))


class JoinKind(enum.Enum):
    NONE = "none"
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class Filters:
    """Filters joined by a single kind of operator, AND or OR.

    Filters of kind NONE accept every record.
    """

    kind: JoinKind = JoinKind.NONE
    filters: Tuple[Filter, ...] = ()

    @classmethod
    def parse(cls, text: str) -> Filters:
        if not text:
            return cls()
        or_count = text.count(_OR)
        and_count = text.count(_AND)
        if or_count > 0 and and_count > 0:
            raise InvalidArgumentError(
                "Mixing AND and OR join operators is not supported"
            )
        if or_count > 0:
            kind, join = JoinKind.OR, _OR
        else:
            kind, join = JoinKind.AND, _AND
        return cls(kind, tuple(Filter.parse(part) for part in text.split(join)))

    def apply(self, metadata: Mapping[str, Value]) -> bool:
        """Return True if the metadata passes the filters."""
        if self.kind is JoinKind.AND:
            return all(f.apply(metadata) for f in self.filters)
        if self.kind is JoinKind.OR:
            return any(f.apply(metadata) for f in self.filters)
        return True