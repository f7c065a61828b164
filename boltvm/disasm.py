"""Disassembly of functions, closures and modules into readable text."""

from __future__ import annotations

from typing import Any, List

from boltvm.callables import BoltModule, Closure, Fn
from boltvm.formatting import to_string
from boltvm.opcodes import format_instruction
from boltvm.strings import BoltString


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, BoltString):
        return value.text
    return str(value)


def _signature_name(signature: Any) -> str:
    return _text(getattr(signature, "name", None))


def _module_name(module: Any) -> str:
    return _text(getattr(module, "name", None)) if module is not None else ""


def dump_fn(function: Any) -> BoltString:
    """Return a textual listing of the constants and code of ``function``.

    ``function`` may be a closure, a function or a module; anything else
    yields an empty listing.
    """
    name = ""
    mod_name = ""
    stack_size = 0
    constants: List[Any] = []
    instructions: List[Any] = []
    has_debug = False

    if isinstance(function, Closure):
        fn = function.fn
        name = _signature_name(fn.signature)
        mod_name = _module_name(fn.module)
        stack_size = fn.stack_size
        constants = fn.constants
        instructions = fn.instructions
        has_debug = fn.debug is not None
    elif isinstance(function, Fn):
        name = _signature_name(function.signature)
        mod_name = _module_name(function.module)
        stack_size = function.stack_size
        constants = function.constants
        instructions = function.instructions
        has_debug = function.debug is not None
    elif isinstance(function, BoltModule):
        name = _module_name(function)
        mod_name = name
        stack_size = function.stack_size
        constants = function.constants
        instructions = function.instructions
        has_debug = function.debug_locs is not None

    def num(n: int) -> str:
        return to_string(n).text

    lines = [
        name,
        f"\tModule: {mod_name}",
        f"\tStack size: {num(stack_size)}",
        f"\tHas debug: {'YES' if has_debug else 'NO'}",
    ]

    if isinstance(function, Closure):
        lines.append(f"\tUpvals [{num(function.num_upv)}]:")
        lines.extend(
            f"\t  [{num(i)}]: {to_string(up).text}"
            for i, up in enumerate(function.upvals)
        )

    lines.append(f"\tConstants [{num(len(constants))}]:")
    lines.extend(
        f"\t  [{num(i)}]: {to_string(const).text}"
        for i, const in enumerate(constants)
    )

    lines.append(f"\tCode [{num(len(instructions))}]:")
    lines.extend(
        f"\t  [{i:03d}]: {format_instruction(ins)}"
        for i, ins in enumerate(instructions)
    )

    return BoltString("\n".join(lines) + "\n")