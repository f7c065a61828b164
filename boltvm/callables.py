"""Modules, functions, closures, native functions, userdata and field access."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional

from boltvm.containers import Array, Table, values_equal
from boltvm.strings import BoltRuntimeError, BoltString


@dataclass(eq=False)
class ModuleImport:
    """An imported binding kept alive by the importing module."""

    name: BoltString
    type: Any = None
    value: Any = None


@dataclass(eq=False)
class BoltModule:
    """A compiled module: its body code, imports, exports and local storage."""

    imports: List[ModuleImport] = field(default_factory=list)
    constants: List[Any] = field(default_factory=list)
    instructions: List[Any] = field(default_factory=list)
    tops: List[int] = field(default_factory=list)
    debug_tokens: List[Any] = field(default_factory=list)
    debug_source: Optional[str] = None
    debug_locs: Optional[List[int]] = None
    path: Optional[BoltString] = None
    name: Optional[BoltString] = None
    stack_size: int = 0
    exports: Table = field(default_factory=Table)
    storage: Table = field(default_factory=Table)
    export_types: Table = field(default_factory=Table)

    def __post_init__(self) -> None:
        self.imports = list(self.imports)

    def export(self, type: Any, key: Any, value: Any) -> None:
        """Publish ``value`` under ``key`` with the given ``type``."""
        self.export_types.set(key, type)
        self.exports.set(key, value)

    def export_native(
        self, name: str, proc: Callable[..., Any], signature: Any
    ) -> "NativeFn":
        """Wrap ``proc`` as a native function and export it under ``name``."""
        native = NativeFn(module=self, type=signature, proc=proc)
        self.export(signature, BoltString(name), native)
        return native

    def get_export_type(self, key: Any) -> Any:
        """Return the type of the export at ``key``, or None."""
        return self.export_types.get(key)

    def get_export(self, key: Any) -> Any:
        """Return the exported value at ``key``, or None."""
        return self.exports.get(key)

    def set_storage(self, key: Any, value: Any) -> None:
        """Store ``value`` at ``key`` in the module's local storage."""
        self.storage.set(key, value)

    def get_storage(self, key: Any) -> Any:
        """Return the stored value at ``key``, or None."""
        return self.storage.get(key)


@dataclass(eq=False)
class Fn:
    """A function defined in the language, with its own constants and code."""

    module: Optional[BoltModule]
    signature: Any
    constants: List[Any] = field(default_factory=list)
    instructions: List[Any] = field(default_factory=list)
    tops: List[int] = field(default_factory=list)
    stack_size: int = 0
    debug: Optional[List[int]] = None

    def __post_init__(self) -> None:
        self.constants = list(self.constants)
        self.instructions = list(self.instructions)
        self.tops = list(self.tops)


@dataclass(eq=False)
class Closure:
    """A function together with the values it captured."""

    fn: Fn
    upvals: List[Any] = field(default_factory=list)

    @property
    def num_upv(self) -> int:
        return len(self.upvals)


@dataclass(eq=False)
class NativeFn:
    """A host function callable from the language."""

    module: Optional[BoltModule]
    type: Any
    proc: Callable[..., Any]


@dataclass(eq=False)
class UserdataField:
    """An accessor pair exposing part of a userdata value as a named field."""

    name: BoltString
    getter: Callable[[Any, int], Any]
    setter: Callable[[Any, int, Any], None]
    offset: int = 0


@dataclass(eq=False)
class Userdata:
    """An opaque host value with named field accessors and an optional finalizer."""

    data: Any
    fields: List[UserdataField] = field(default_factory=list)
    type: Any = None
    finalizer: Optional[Callable[["Userdata"], None]] = None

    def _field(self, key: Any) -> UserdataField:
        for entry in self.fields:
            if values_equal(entry.name, key):
                return entry
        raise BoltRuntimeError("Userdata has no such field!")


def _return_type_of(signature: Any) -> Any:
    return getattr(signature, "return_type", None)


def get_return_type(callable: Any) -> Any:
    """Return the return type of the signature of ``callable``, or None."""
    if isinstance(callable, Fn):
        return _return_type_of(callable.signature)
    if isinstance(callable, Closure):
        return _return_type_of(callable.fn.signature)
    if isinstance(callable, NativeFn):
        return _return_type_of(callable.type)
    return None


def get_owning_module(callable: Any) -> Optional[BoltModule]:
    """Return the module that owns ``callable``, or None."""
    if isinstance(callable, Fn):
        return callable.module
    if isinstance(callable, Closure):
        return callable.fn.module
    if isinstance(callable, NativeFn):
        return callable.module
    return None


def get_top_at(callable: Any, ip: int) -> int:
    """Return the number of registers in use at instruction index ``ip``."""
    if isinstance(callable, Closure):
        return callable.fn.tops[ip]
    if isinstance(callable, (Fn, BoltModule)):
        return callable.tops[ip]
    return 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _prototype(prototypes: Optional[Mapping[str, Table]], name: str) -> Optional[Table]:
    if prototypes is None:
        return None
    return prototypes.get(name)


def get_field(obj: Any, key: Any, prototypes: Optional[Mapping[str, Table]] = None) -> Any:
    """Index ``obj`` with ``key`` whatever its kind.

    ``prototypes`` maps ``"array"`` and ``"string"`` to the prototype tables
    consulted for arrays and strings.
    """
    if isinstance(obj, Table):
        return obj.get(key)
    if isinstance(obj, Array):
        if not _is_number(key):
            proto = _prototype(prototypes, "array")
            found = proto.get(key) if proto is not None else None
            if found is not None:
                return found
            raise BoltRuntimeError("Attempted to index array with non-number!")
        return obj.get(int(key))
    if isinstance(obj, Userdata):
        entry = obj._field(key)
        return entry.getter(obj.data, entry.offset)
    if isinstance(obj, BoltString):
        proto = _prototype(prototypes, "string")
        return proto.get(key) if proto is not None else None
    values = getattr(obj, "prototype_values", None)
    if isinstance(values, Table):
        return values.get(key)
    raise BoltRuntimeError("Attempted to get field from fieldless type")


def set_field(obj: Any, key: Any, value: Any) -> None:
    """Set ``key`` on ``obj`` to ``value`` whatever its kind."""
    if isinstance(obj, Table):
        obj.set(key, value)
        return
    if isinstance(obj, Array):
        if not _is_number(key):
            raise BoltRuntimeError("Attempted to index array with non-number!")
        obj.set(int(key), value)
        return
    if isinstance(obj, Userdata):
        entry = obj._field(key)
        entry.setter(obj.data, entry.offset, value)
        return
    values = getattr(obj, "prototype_values", None)
    if isinstance(values, Table):
        values.set(key, value)
        return
    raise BoltRuntimeError("Attempted to set field on fieldless type")