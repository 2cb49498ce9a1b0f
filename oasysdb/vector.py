"""Dense vectors of 32-bit floats."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

import numpy as np


class Vector:
    """An immutable one-dimensional vector of 32-bit floats.

    The length is not checked against any dimension here; callers validate
    it before using the vector.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Iterable[float] | np.ndarray | Vector) -> None:
        if isinstance(data, Vector):
            data = data._data
        elif not isinstance(data, np.ndarray):
            data = list(data)
        array = np.array(data, dtype=np.float32)
        if array.ndim != 1:
            raise ValueError("Vector data must be one-dimensional")
        array.flags.writeable = False
        self._data = array

    @classmethod
    def random(cls, dimension: int) -> Vector:
        """Return a vector of uniform random values in [0, 1)."""
        return cls(np.random.random(dimension))

    @property
    def array(self) -> np.ndarray:
        """The underlying read-only array."""
        return self._data

    def to_list(self) -> list[float]:
        return [float(x) for x in self._data]

    def __array__(self, dtype: Any = None, copy: Any = None) -> np.ndarray:
        if dtype is None and not copy:
            return self._data
        return np.array(self._data, dtype=dtype)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[float]:
        return (float(x) for x in self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return bool(np.array_equal(self._data, other._data))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Vector({self.to_list()!r})"