"""A tracing mark-and-sweep collector for runtime objects."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from boltvm.callables import BoltModule, Closure, Fn, ModuleImport, NativeFn, Userdata
from boltvm.containers import Annotation, Array, Table
from boltvm.strings import BoltRuntimeError, BoltString, StringTable

POINTER_SIZE = 8
DEFAULT_GREY_CAP = 256
DEFAULT_NEXT_CYCLE = 1024 * 1024 * 32
DEFAULT_GROWTH_PCT = 150
DEFAULT_PAUSE_GROWTH_PCT = 115

_OBJECT_HEADER = 32
_PAIR_SIZE = 16
_VALUE_SIZE = 8

_PRIMITIVES = (bool, int, float, complex, str, bytes)

# Attributes followed on objects of kinds the collector does not know directly,
# such as types: prototypes, annotations and the category-specific members.
_GENERIC_REFERENCES = (
    "prototype",
    "prototype_types",
    "prototype_values",
    "annotations",
    "inner",
    "return_type",
    "varargs_type",
    "args",
    "tmpl",
    "layout",
    "key_layout",
    "parent",
    "key_type",
    "value_type",
    "boxed",
    "types",
    "fields",
    "options",
    "name",
)


def _is_object(value: Any) -> bool:
    return value is not None and not isinstance(value, _PRIMITIVES)


def _flatten(value: Any) -> Iterator[Any]:
    if isinstance(value, (list, tuple)):
        yield from value
    else:
        yield value


def _raw_references(obj: Any) -> Iterator[Any]:
    if isinstance(obj, BoltString):
        return
    if isinstance(obj, Table):
        yield obj.prototype
        for key, value in obj:
            yield key
            yield value
    elif isinstance(obj, Array):
        yield from obj.items
    elif isinstance(obj, Annotation):
        yield obj.name
        yield obj.args
        yield obj.next
    elif isinstance(obj, BoltModule):
        yield obj.exports
        yield obj.export_types
        yield obj.name
        yield obj.path
        yield obj.storage
        yield from obj.imports
        yield from obj.constants
    elif isinstance(obj, ModuleImport):
        yield obj.type
        yield obj.name
        yield obj.value
    elif isinstance(obj, Fn):
        yield obj.module
        yield obj.signature
        yield from obj.constants
    elif isinstance(obj, Closure):
        yield obj.fn
        yield from obj.upvals
    elif isinstance(obj, NativeFn):
        yield obj.type
    elif isinstance(obj, Userdata):
        yield obj.type
        for entry in obj.fields:
            yield entry.name
    else:
        for attr in _GENERIC_REFERENCES:
            yield from _flatten(getattr(obj, attr, None))


def references(obj: Any) -> Iterator[Any]:
    """Yield every object directly referenced by ``obj``."""
    return (ref for ref in _raw_references(obj) if _is_object(ref))


def _object_size(obj: Any) -> int:
    if isinstance(obj, BoltString):
        return _OBJECT_HEADER + len(obj.text.encode("utf-8")) + 1
    if isinstance(obj, Closure):
        return _OBJECT_HEADER + _VALUE_SIZE * obj.num_upv
    if isinstance(obj, Table):
        return _OBJECT_HEADER + _PAIR_SIZE * max(obj.capacity, len(obj))
    if isinstance(obj, Array):
        return _OBJECT_HEADER + _VALUE_SIZE * max(obj.capacity, len(obj))
    return _OBJECT_HEADER


class GarbageCollector:
    """Tracks allocated bytes and managed objects, and frees unreachable ones.

    ``strings`` is the interning table to purge of dead strings, and
    ``root_provider`` returns the roots used when tracking a new object pushes
    the allocation total over the next-cycle threshold.
    """

    def __init__(
        self,
        strings: Optional[StringTable] = None,
        root_provider: Optional[Callable[[], Iterable[Any]]] = None,
    ) -> None:
        self.strings = strings
        self.root_provider = root_provider
        self.bytes_allocated = 0
        self.pause_count = 0
        self._grey_cap = 0
        self._greys: List[Any] = []
        self._objects: Dict[int, Tuple[Any, int]] = {}

        self.grey_cap = DEFAULT_GREY_CAP
        self.next_cycle = DEFAULT_NEXT_CYCLE
        self.min_size = self.next_cycle
        self.growth_pct = DEFAULT_GROWTH_PCT
        self.pause_growth_pct = DEFAULT_PAUSE_GROWTH_PCT

    @property
    def grey_cap(self) -> int:
        """Capacity of the pending grey list; resizing it is accounted for."""
        return self._grey_cap

    @grey_cap.setter
    def grey_cap(self, value: int) -> None:
        old = self._grey_cap
        self.realloc(old * POINTER_SIZE, value * POINTER_SIZE)
        self._grey_cap = value

    def alloc(self, size: int) -> int:
        """Account for ``size`` newly allocated bytes; return the total."""
        self.bytes_allocated += size
        return self.bytes_allocated

    def realloc(self, old_size: int, new_size: int) -> int:
        """Account for a block growing or shrinking; return the total."""
        if old_size > self.bytes_allocated:
            raise BoltRuntimeError(
                "Attempted to realloc more bytes than GC is tracking!"
            )
        self.bytes_allocated += new_size - old_size
        return self.bytes_allocated

    def free(self, size: int) -> int:
        """Account for ``size`` freed bytes; return the total."""
        if size > self.bytes_allocated:
            raise BoltRuntimeError("Attempted to free more bytes than GC is tracking!")
        self.bytes_allocated -= size
        return self.bytes_allocated

    def track(self, obj: Any) -> Any:
        """Register ``obj`` as managed and return it.

        If the allocation total has reached the next-cycle threshold and a
        root provider is configured, a collection runs first.
        """
        if id(obj) in self._objects:
            return obj
        if self.bytes_allocated >= self.next_cycle and self.root_provider is not None:
            self.collect(self.root_provider())
        size = _object_size(obj)
        self.alloc(size)
        self._objects[id(obj)] = (obj, size)
        return obj

    def _calc_next_cycle(self, growth_pct: int) -> None:
        self.next_cycle = max(self.bytes_allocated * growth_pct // 100, self.min_size)

    def _mark(self, roots: Iterable[Any]) -> set:
        marked: set = set()

        def grey(obj: Any) -> None:
            if not _is_object(obj) or id(obj) in marked:
                return
            marked.add(id(obj))
            if len(self._greys) >= self._grey_cap:
                self.grey_cap = max(self._grey_cap * 2, 1)
            self._greys.append(obj)

        for root in roots:
            grey(root)
        while self._greys:
            for ref in references(self._greys.pop()):
                grey(ref)
        return marked

    def _release(self, obj: Any) -> None:
        if isinstance(obj, Userdata) and obj.finalizer is not None:
            obj.finalizer(obj)
        elif isinstance(obj, BoltString) and obj.interned and self.strings is not None:
            self.strings.remove(obj)

    def collect(self, roots: Iterable[Any], max_collect: int = 0) -> int:
        """Free tracked objects unreachable from ``roots``; return how many.

        Stops after ``max_collect`` objects when it is non-zero. While paused,
        only the next-cycle threshold is recomputed.
        """
        if self.pause_count > 0:
            self._calc_next_cycle(self.pause_growth_pct)
            return 0

        marked = self._mark(roots)

        if self.strings is not None:
            self.strings.sweep(lambda s: id(s) in marked)

        collected = 0
        for key, (obj, size) in list(self._objects.items()):
            if key in marked:
                continue
            del self._objects[key]
            self._release(obj)
            self.free(size)
            collected += 1
            if max_collect and collected >= max_collect:
                return collected

        self._calc_next_cycle(self.growth_pct)
        return collected

    def pause(self) -> None:
        """Stop collections from running; pauses nest."""
        self.pause_count += 1

    def unpause(self) -> None:
        """Undo one pause."""
        if self.pause_count <= 0:
            raise BoltRuntimeError("GC unpause requested with zero pending pauses!")
        self.pause_count -= 1

    @contextmanager
    def paused(self) -> Iterator["GarbageCollector"]:
        """Keep the collector paused for the duration of a ``with`` block."""
        self.pause()
        try:
            yield self
        finally:
            self.unpause()

    def __contains__(self, obj: object) -> bool:
        return id(obj) in self._objects and self._objects[id(obj)][0] is obj

    def __len__(self) -> int:
        return len(self._objects)