import re
from dataclasses import dataclass

from boltvm.callables import BoltModule, Closure, Fn, ModuleImport, NativeFn
from boltvm.containers import Array, Annotation, Table
from boltvm.formatting import FORMAT_META, to_string
from boltvm.strings import BoltString


@dataclass
class Sig:
    name: str


class NamedType:
    def __init__(self, name):
        self.name = name


def test_string_is_returned_as_is():
    s = BoltString("hello")
    assert to_string(s) is s


def test_literals():
    assert to_string(True).text == "true"
    assert to_string(False).text == "false"
    assert to_string(None).text == "null"


def test_integral_numbers():
    assert to_string(3).text == "3"
    assert to_string(4.0).text == "4"
    assert to_string(-2.0).text == "-2"


def test_fractional_numbers_use_nine_places():
    assert to_string(1.5).text == "1.500000000"


def test_non_finite_numbers_are_not_integral():
    assert to_string(float("inf")).text == f"{float('inf'):.9f}"


def test_array_and_table():
    arr = Array()
    arr.push(1)
    arr.push(2)
    assert to_string(arr).text == f"<0x{id(arr):x}: array[2]>"
    tbl = Table()
    assert to_string(tbl).text == f"<0x{id(tbl):x}: table>"


def test_table_format_function():
    tbl = Table()
    tbl.set(BoltString(FORMAT_META), "fmt")
    seen = []

    def call(fn, value):
        seen.append((fn, value))
        return BoltString("custom")

    assert to_string(tbl, call).text == "custom"
    assert seen == [("fmt", tbl)]
    assert to_string(tbl).text == f"<0x{id(tbl):x}: table>"


def test_functions():
    fn = Fn(None, Sig("fn(): null"))
    assert to_string(fn).text == f"<0x{id(fn):x}: fn(): null>"
    cl = Closure(fn)
    assert to_string(cl).text == f"<0x{id(cl):x}: fn(): null>"
    native = NativeFn(None, Sig("fn(x)"), print)
    assert to_string(native).text == f"<Native(0x{id(native):x}): fn(x)>"
    anon = NativeFn(None, None, print)
    assert to_string(anon).text.endswith("): ???>")


def test_module_import_and_object():
    mod = BoltModule()
    assert to_string(mod).text == f"<0x{id(mod):x}: module>"
    imp = ModuleImport(BoltString("io"))
    assert to_string(imp).text == f"<0x{id(imp):x}: Import(>io"
    anno = Annotation(BoltString("a"))
    assert re.fullmatch(r"<0x[0-9a-f]+: object>", to_string(anno).text)


def test_type_like_object_prints_name():
    assert to_string(NamedType("number")).text == "number"