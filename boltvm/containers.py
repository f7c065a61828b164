"""Tables, arrays and annotations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple

from boltvm.strings import BoltRuntimeError, BoltString


def values_equal(a: Any, b: Any) -> bool:
    """Compare two runtime values the way table keys are compared."""
    if a is b:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return False
    if isinstance(a, BoltString) and isinstance(b, BoltString):
        return a.text == b.text
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    return False


@dataclass(eq=False)
class Table:
    """An ordered list of key/value pairs with an optional prototype fallback."""

    capacity: int = 0
    prototype: Optional["Table"] = None
    pairs: List[List[Any]] = field(default_factory=list)

    def set(self, key: Any, value: Any) -> bool:
        """Set ``key`` to ``value``; return True if the key already existed."""
        for pair in self.pairs:
            if values_equal(pair[0], key):
                pair[1] = value
                return True
        if self.capacity <= len(self.pairs):
            self.capacity = self.capacity * 2 or 4
        self.pairs.append([key, value])
        return False

    def get(self, key: Any) -> Any:
        """Return the value for ``key``, searching prototypes; None if absent."""
        table: Optional[Table] = self
        while table is not None:
            for k, v in table.pairs:
                if values_equal(k, key):
                    return v
            table = table.prototype
        return None

    def index_of(self, key: Any) -> int:
        """Return the slot index of ``key`` in this table only, or -1."""
        return next(
            (i for i, (k, _) in enumerate(self.pairs) if values_equal(k, key)), -1
        )

    def delete(self, key: Any) -> bool:
        """Remove ``key``, moving the last pair into its slot."""
        idx = self.index_of(key)
        if idx < 0:
            return False
        last = self.pairs.pop()
        if idx < len(self.pairs):
            self.pairs[idx] = last
        return True

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[Tuple[Any, Any]]:
        return ((k, v) for k, v in self.pairs)


@dataclass(eq=False)
class Array:
    """A growable list of values."""

    capacity: int = 0
    items: List[Any] = field(default_factory=list)

    def push(self, value: Any) -> int:
        """Append ``value`` and return the new length."""
        if len(self.items) == self.capacity:
            self.reserve(self.capacity * 2)
        self.items.append(value)
        return len(self.items)

    def pop(self) -> Any:
        """Remove and return the last value, or None if empty."""
        return self.items.pop() if self.items else None

    def reserve(self, capacity: int) -> int:
        """Ensure room for at least ``capacity`` values; return the capacity."""
        if capacity == 0:
            capacity = 4
        if capacity > self.capacity:
            self.capacity = capacity
        return self.capacity

    def _check(self, index: int) -> None:
        if index < 0 or index >= len(self.items):
            raise BoltRuntimeError("Array index out of bounds!")

    def get(self, index: int) -> Any:
        self._check(index)
        return self.items[index]

    def set(self, index: int, value: Any) -> bool:
        self._check(index)
        self.items[index] = value
        return True

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)


@dataclass(eq=False)
class Annotation:
    """A named annotation with arguments, linked to the next one."""

    name: BoltString
    args: Optional[Array] = None
    next: Optional["Annotation"] = None

    def push(self, value: Any) -> None:
        """Add an argument to this annotation."""
        if self.args is None:
            self.args = Array(1)
        self.args.push(value)

    def chain(self, name: BoltString) -> "Annotation":
        """Create a new annotation linked after this one and return it."""
        self.next = Annotation(name)
        return self.next