"""Conversion of runtime values to their textual form."""

from __future__ import annotations

import math
from typing import Any, Callable, Optional

from boltvm.callables import BoltModule, Closure, Fn, ModuleImport, NativeFn
from boltvm.containers import Array, Table
from boltvm.strings import BoltString

FORMAT_META = "@format"


def _address(obj: Any) -> str:
    return f"0x{id(obj):x}"


def _signature_name(signature: Any) -> str:
    return str(getattr(signature, "name", "???"))


def _format_number(n: float) -> str:
    if not math.isnan(n) and not math.isinf(n) and math.floor(n) == n:
        return str(int(n))
    return f"{n:.9f}"


def _format(value: Any, call: Optional[Callable[[Any, Any], Any]]) -> str:
    if isinstance(value, BoltString):
        return value.text
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return _format_number(float(value))
    addr = _address(value)
    if isinstance(value, Fn):
        return f"<{addr}: {_signature_name(value.signature)}>"
    if isinstance(value, Closure):
        return f"<{addr}: {_signature_name(value.fn.signature)}>"
    if isinstance(value, NativeFn):
        name = _signature_name(value.type) if value.type is not None else "???"
        return f"<Native({addr}): {name}>"
    if isinstance(value, Array):
        return f"<{addr}: array[{len(value)}]>"
    if isinstance(value, Table):
        format_fn = value.get(BoltString(FORMAT_META))
        if format_fn is not None and call is not None:
            result = call(format_fn, value)
            return result.text if isinstance(result, BoltString) else str(result)
        return f"<{addr}: table>"
    if isinstance(value, ModuleImport):
        return f"<{addr}: Import(>" + _format(value.name, call)
    if isinstance(value, BoltModule):
        return f"<{addr}: module>"
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    return f"<{addr}: object>"


def to_string(
    value: Any, call: Optional[Callable[[Any, Any], Any]] = None
) -> BoltString:
    """Return the textual form of ``value`` as a string value.

    Strings are returned unchanged. A table carrying a format function is
    rendered by ``call(format_fn, table)`` when ``call`` is given.
    """
    if isinstance(value, BoltString):
        return value
    return BoltString(_format(value, call))