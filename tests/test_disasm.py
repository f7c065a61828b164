from dataclasses import dataclass

from boltvm.callables import BoltModule, Closure, Fn
from boltvm.disasm import dump_fn
from boltvm.opcodes import Instruction, OpCode, format_instruction
from boltvm.strings import BoltString


@dataclass
class Sig:
    name: str


def _module():
    return BoltModule(name=BoltString("main"))


def _fn(debug=None):
    code = [
        Instruction.aibc(OpCode.LOAD, 0, 0),
        Instruction.abc(OpCode.ADD, 1, 0, 0),
        Instruction(OpCode.END),
    ]
    return Fn(
        module=_module(),
        signature=Sig("fn(number): number"),
        constants=[42, BoltString("hi")],
        instructions=code,
        stack_size=4,
        debug=debug,
    )


def test_fn_header():
    lines = dump_fn(_fn()).text.split("\n")
    assert lines[0] == "fn(number): number"
    assert lines[1] == "\tModule: main"
    assert lines[2] == "\tStack size: 4"
    assert lines[3] == "\tHas debug: NO"


def test_fn_constants_and_code():
    fn = _fn()
    lines = dump_fn(fn).text.split("\n")
    assert "\tConstants [2]:" in lines
    assert "\t  [0]: 42" in lines
    assert "\t  [1]: hi" in lines
    assert "\tCode [3]:" in lines
    for i, ins in enumerate(fn.instructions):
        assert f"\t  [{i:03d}]: {format_instruction(ins)}" in lines


def test_output_ends_with_newline():
    assert dump_fn(_fn()).text.endswith("END\n")


def test_has_debug_yes():
    assert "\tHas debug: YES" in dump_fn(_fn(debug=[0, 0, 0])).text


def test_closure_lists_upvals():
    fn = _fn()
    closure = Closure(fn=fn, upvals=[7, True])
    lines = dump_fn(closure).text.split("\n")
    assert lines[0] == "fn(number): number"
    assert "\tUpvals [2]:" in lines
    assert "\t  [0]: 7" in lines
    assert "\t  [1]: true" in lines
    assert lines.index("\tUpvals [2]:") < lines.index("\tConstants [2]:")


def test_fn_has_no_upval_section():
    assert "Upvals" not in dump_fn(_fn()).text


def test_module_dump():
    mod = _module()
    mod.instructions = [Instruction(OpCode.END)]
    mod.stack_size = 2
    lines = dump_fn(mod).text.split("\n")
    assert lines[0] == "main"
    assert lines[1] == "\tModule: main"
    assert lines[2] == "\tStack size: 2"
    assert "\tCode [1]:" in lines
    assert "\t  [000]: END" in lines


def test_unknown_object_gives_empty_listing():
    lines = dump_fn(object()).text.split("\n")
    assert lines[0] == ""
    assert "\tConstants [0]:" in lines
    assert "\tCode [0]:" in lines